import cv2
import numpy as np
from scipy.spatial.transform import Rotation

from utils.exceptions import EstimationFailure


class Model:
    """ 鲁棒估计求解模型基类 """

    def __init__(self):
        self.descriptor = None


''' 四元数辅助函数，四元数按 (a, b, c, d) = (w, x, y, z) 排列 '''
def rotationToQuaternion(rotation):
    """ 旋转矩阵转换为单位四元数，并保证 a >= 0 """
    x, y, z, w = Rotation.from_matrix(rotation).as_quat()
    quaternion = np.array([w, x, y, z])
    if quaternion[0] < 0.0:
        quaternion = -quaternion
    return quaternion


def quaternionToRotation(quaternion):
    """ 四元数（不要求归一化）转换为旋转矩阵 """
    a, b, c, d = quaternion
    return Rotation.from_quat([b, c, d, a]).as_matrix()


class PinholeCameraIntrinsicParameters:
    """ 针孔相机内参 """

    def __init__(self,
                 horizontal_focal_length=1.0,
                 vertical_focal_length=1.0,
                 horizontal_principal_point=0.0,
                 vertical_principal_point=0.0,
                 skewness=0.0):
        self.horizontal_focal_length = float(horizontal_focal_length)
        self.vertical_focal_length = float(vertical_focal_length)
        self.horizontal_principal_point = float(horizontal_principal_point)
        self.vertical_principal_point = float(vertical_principal_point)
        self.skewness = float(skewness)

    @classmethod
    def fromMatrix(cls, matrix):
        """ 由上三角内参矩阵 K 构建内参 """
        K = np.asarray(matrix, dtype=np.float64) / matrix[2, 2]
        return cls(horizontal_focal_length=K[0, 0],
                   vertical_focal_length=K[1, 1],
                   horizontal_principal_point=K[0, 2],
                   vertical_principal_point=K[1, 2],
                   skewness=K[0, 1])

    @property
    def matrix(self):
        return np.array([[self.horizontal_focal_length, self.skewness, self.horizontal_principal_point],
                         [0.0, self.vertical_focal_length, self.vertical_principal_point],
                         [0.0, 0.0, 1.0]])

    @property
    def aspect_ratio(self):
        """ 纵横比 fy / fx """
        return self.vertical_focal_length / self.horizontal_focal_length

    @property
    def principal_point(self):
        return np.array([self.horizontal_principal_point, self.vertical_principal_point])

    def __repr__(self):
        return (f"PinholeCameraIntrinsicParameters(fx={self.horizontal_focal_length:g}, "
                f"fy={self.vertical_focal_length:g}, cx={self.horizontal_principal_point:g}, "
                f"cy={self.vertical_principal_point:g}, skewness={self.skewness:g})")


class PinholeCamera(Model):
    """ 针孔相机模型，descriptor 为 3x4 投影矩阵 P = K R [I | -C] """

    def __init__(self, matrix=None):
        super().__init__()
        if matrix is None:
            matrix = np.c_[np.eye(3), np.zeros(3)]
        self.descriptor = np.array(matrix, dtype=np.float64).reshape((3, 4))

    @classmethod
    def fromParameters(cls, intrinsic, rotation, center):
        """ 由内参、相机旋转矩阵和相机中心构建相机

        参数
        ----------
        intrinsic : PinholeCameraIntrinsicParameters
            相机内参
        rotation : numpy
            3x3 旋转矩阵
        center : numpy
            相机中心的非齐次坐标
        """
        rotation = np.asarray(rotation, dtype=np.float64)
        center = np.asarray(center, dtype=np.float64).reshape(3)
        KR = np.dot(intrinsic.matrix, rotation)
        return cls(np.c_[KR, -np.dot(KR, center)])

    def normalize(self):
        """ 返回 Frobenius 范数为 1 且左 3x3 块行列式为正的等价相机 """
        P = self.descriptor / np.linalg.norm(self.descriptor)
        if np.linalg.det(P[:, 0:3]) < 0.0:
            P = -P
        return PinholeCamera(P)

    def project(self, points3D):
        """ 将 (N, 3) 非齐次三维点投影为 (N, 2) 的图像点 """
        points3D = np.atleast_2d(points3D)
        homogeneous = np.dot(np.c_[points3D, np.ones(len(points3D))], self.descriptor.T)
        with np.errstate(divide="ignore", invalid="ignore"):
            return homogeneous[:, 0:2] / homogeneous[:, 2:3]

    def decompose(self):
        """ 分解相机矩阵

        返回
        ----------
        PinholeCameraIntrinsicParameters, numpy, numpy
            相机内参，3x3 相机旋转矩阵，相机中心
        """
        P = self.descriptor
        M = P[:, 0:3]
        det = np.linalg.det(M)
        if not np.isfinite(det) or abs(det) < np.finfo(np.float64).eps * np.linalg.norm(M) ** 3:
            raise EstimationFailure("Camera matrix has a singular left 3x3 block")
        if det < 0.0:
            P = -P
            M = -M

        center = -np.linalg.solve(M, P[:, 3])

        # RQ 分解: M = K R
        _, K, R, _, _, _ = cv2.RQDecomp3x3(M)

        # 保证内参矩阵对角元为正
        signs = np.sign(np.diag(K))
        signs[signs == 0.0] = 1.0
        D = np.diag(signs)
        K = np.dot(K, D)
        R = np.dot(D, R)

        return PinholeCameraIntrinsicParameters.fromMatrix(K), R, center

    def getIntrinsicParameters(self):
        return self.decompose()[0]

    def getCameraRotation(self):
        return self.decompose()[1]

    def getCameraCenter(self):
        return self.decompose()[2]


class EuclideanTransformation3D(Model):
    """ 三维欧式（刚体）变换 y = R x + t，descriptor 为 4x4 齐次矩阵 """

    def __init__(self, rotation=None, translation=None):
        super().__init__()
        rotation = np.eye(3) if rotation is None else np.asarray(rotation, dtype=np.float64)
        translation = np.zeros(3) if translation is None else np.asarray(translation, dtype=np.float64).reshape(3)
        self.descriptor = np.eye(4)
        self.descriptor[0:3, 0:3] = rotation
        self.descriptor[0:3, 3] = translation

    @classmethod
    def fromQuaternion(cls, quaternion, translation):
        return cls(quaternionToRotation(quaternion), translation)

    @property
    def rotation(self):
        return self.descriptor[0:3, 0:3]

    @property
    def translation(self):
        return self.descriptor[0:3, 3]

    @property
    def quaternion(self):
        return rotationToQuaternion(self.rotation)

    def transform(self, points):
        """ 变换 (N, 3) 非齐次点集 """
        points = np.atleast_2d(points)
        return np.dot(points, self.rotation.T) + self.translation

    def inverse(self):
        rotation = self.rotation.T
        return EuclideanTransformation3D(rotation, -np.dot(rotation, self.translation))


class Conic(Model):
    """ 二次曲线 a x^2 + b xy + c y^2 + d x + e y + f = 0，descriptor 为 3x3 对称矩阵 """

    def __init__(self, matrix=None):
        super().__init__()
        if matrix is None:
            matrix = np.diag([1.0, 1.0, -1.0])
        matrix = np.asarray(matrix, dtype=np.float64)
        self.descriptor = 0.5 * (matrix + matrix.T)

    @classmethod
    def fromCoefficients(cls, coefficients):
        a, b, c, d, e, f = coefficients
        return cls(np.array([[a, b / 2.0, d / 2.0],
                             [b / 2.0, c, e / 2.0],
                             [d / 2.0, e / 2.0, f]]))

    @property
    def coefficients(self):
        C = self.descriptor
        return np.array([C[0, 0], 2.0 * C[0, 1], C[1, 1], 2.0 * C[0, 2], 2.0 * C[1, 2], C[2, 2]])

    def normalize(self):
        """ 返回 Frobenius 范数为 1 的等价二次曲线 """
        return Conic(self.descriptor / np.linalg.norm(self.descriptor))

    def locusResiduals(self, points):
        """ 点集 (N, 2) 到曲线的代数距离 x^T C x（带符号） """
        points = np.atleast_2d(points)
        homogeneous = np.c_[points, np.ones(len(points))]
        return np.einsum("ij,jk,ik->i", homogeneous, self.descriptor, homogeneous)
