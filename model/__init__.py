from .models import (Conic, EuclideanTransformation3D, Model, PinholeCamera,
                     PinholeCameraIntrinsicParameters, quaternionToRotation,
                     rotationToQuaternion)
