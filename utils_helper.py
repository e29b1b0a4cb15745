import matplotlib.pyplot as plt
import numpy as np
from scipy.spatial.transform import Rotation

from model import (Conic, EuclideanTransformation3D, PinholeCamera,
                   PinholeCameraIntrinsicParameters)


""" 误差计算模块（重投影、变换、代数距离） """
def getReprojectionError(camera, points3D, points2D):
    """ 平均重投影误差（像素） """
    projected = camera.project(points3D)
    return float(np.mean(np.sqrt(np.sum((projected - points2D) ** 2, axis=1))))


def getTransformationError(transformation, input_points, output_points):
    """ 平均变换误差 """
    transformed = transformation.transform(input_points)
    return float(np.mean(np.sqrt(np.sum((transformed - output_points) ** 2, axis=1))))


def getConicError(conic, points):
    """ 平均代数距离 """
    return float(np.mean(np.abs(conic.normalize().locusResiduals(points))))


""" 合成数据生成模块 """
def addOutliers(points, outlier_ratio, outlier_std, rng):
    """ 随机选取一部分点加入大的高斯噪声

    返回
    ----------
    numpy, numpy, numpy
        加噪后的点集，外点 mask，每个点的质量得分 1 / (1 + 误差)
    """
    points = np.array(points, dtype=np.float64)
    point_number = len(points)
    outliers = rng.random(point_number) < outlier_ratio
    errors = np.zeros(point_number)

    noise = rng.normal(0.0, outlier_std, (np.count_nonzero(outliers), points.shape[1]))
    points[outliers] += noise
    errors[outliers] = np.sqrt(np.sum(noise ** 2, axis=1))

    quality_scores = 1.0 / (1.0 + errors)
    return points, outliers, quality_scores


def generatePinholeCamera(rng):
    """ 随机生成一个针孔相机，返回相机、内参、旋转矩阵、相机中心 """
    focal_length = rng.uniform(110.0, 130.0)
    intrinsic = PinholeCameraIntrinsicParameters(horizontal_focal_length=focal_length,
                                                 vertical_focal_length=focal_length * rng.uniform(0.95, 1.05),
                                                 horizontal_principal_point=rng.uniform(-50.0, 50.0),
                                                 vertical_principal_point=rng.uniform(-50.0, 50.0),
                                                 skewness=rng.uniform(-0.001, 0.001))
    angles = rng.uniform(10.0, 15.0, 3) * rng.choice([-1.0, 1.0], 3)
    rotation = Rotation.from_euler("xyz", angles, degrees=True).as_matrix()
    center = rng.uniform(50.0, 100.0, 3)
    return PinholeCamera.fromParameters(intrinsic, rotation, center), intrinsic, rotation, center


def generatePinholeCameraData(point_number=500,
                              outlier_ratio=0.2,
                              outlier_std=100.0,
                              inlier_std=0.0,
                              seed=None):
    """ 生成针孔相机的三维点和图像投影点

    参数
    ----------
    point_number : int
        点的数目
    outlier_ratio : float
        外点比例
    outlier_std : float
        外点噪声的标准差（像素）
    inlier_std : float
        内点噪声的标准差（像素）
    seed : int
        随机数种子

    返回
    ----------
    dict
        camera, intrinsic, rotation, center, points3D, points2D, outliers, quality_scores
    """
    rng = np.random.default_rng(seed)
    camera, intrinsic, rotation, center = generatePinholeCamera(rng)

    # 在相机坐标系下生成相机前方的点，再变换到世界坐标系
    camera_points = np.c_[rng.uniform(-100.0, 100.0, (point_number, 2)),
                          rng.uniform(100.0, 200.0, point_number)]
    points3D = np.dot(camera_points, rotation) + center
    points2D = camera.project(points3D)
    if inlier_std > 0.0:
        points2D = points2D + rng.normal(0.0, inlier_std, points2D.shape)

    points2D, outliers, quality_scores = addOutliers(points2D, outlier_ratio, outlier_std, rng)
    return {"camera": camera,
            "intrinsic": intrinsic,
            "rotation": rotation,
            "center": center,
            "points3D": points3D,
            "points2D": points2D,
            "outliers": outliers,
            "quality_scores": quality_scores}


def generateEuclideanTransformationData(point_number=100,
                                        outlier_ratio=0.2,
                                        outlier_std=100.0,
                                        inlier_std=0.0,
                                        seed=None):
    """ 生成三维刚体变换的输入点和输出点

    返回
    ----------
    dict
        transformation, input_points, output_points, outliers, quality_scores
    """
    rng = np.random.default_rng(seed)
    rotation = Rotation.from_euler("xyz", rng.uniform(-180.0, 180.0, 3), degrees=True).as_matrix()
    transformation = EuclideanTransformation3D(rotation, rng.uniform(-50.0, 50.0, 3))

    input_points = rng.uniform(-100.0, 100.0, (point_number, 3))
    output_points = transformation.transform(input_points)
    if inlier_std > 0.0:
        output_points = output_points + rng.normal(0.0, inlier_std, output_points.shape)

    output_points, outliers, quality_scores = addOutliers(output_points, outlier_ratio, outlier_std, rng)
    return {"transformation": transformation,
            "input_points": input_points,
            "output_points": output_points,
            "outliers": outliers,
            "quality_scores": quality_scores}


def ellipseConic(center, axes, angle):
    """ 由中心、半轴长和旋转角构建椭圆 """
    cos, sin = np.cos(angle), np.sin(angle)
    # 标准椭圆到世界坐标的变换
    transform = np.array([[cos, -sin, center[0]],
                          [sin, cos, center[1]],
                          [0.0, 0.0, 1.0]])
    inverse = np.linalg.inv(transform)
    canonical = np.diag([1.0 / axes[0] ** 2, 1.0 / axes[1] ** 2, -1.0])
    return Conic(np.dot(np.dot(inverse.T, canonical), inverse)).normalize()


def generateConicData(point_number=100,
                      outlier_ratio=0.2,
                      outlier_std=5.0,
                      seed=None):
    """ 生成椭圆上的点

    返回
    ----------
    dict
        conic, points, outliers, quality_scores
    """
    rng = np.random.default_rng(seed)
    center = rng.uniform(-10.0, 10.0, 2)
    axes = rng.uniform(3.0, 8.0, 2)
    angle = rng.uniform(0.0, np.pi)
    conic = ellipseConic(center, axes, angle)

    t = rng.uniform(0.0, 2.0 * np.pi, point_number)
    canonical = np.c_[axes[0] * np.cos(t), axes[1] * np.sin(t)]
    rotation = np.array([[np.cos(angle), -np.sin(angle)],
                         [np.sin(angle), np.cos(angle)]])
    points = np.dot(canonical, rotation.T) + center

    points, outliers, quality_scores = addOutliers(points, outlier_ratio, outlier_std, rng)
    return {"conic": conic,
            "points": points,
            "outliers": outliers,
            "quality_scores": quality_scores}


""" 对比信息绘制模块 """
def drawReprojection(ax, camera, points3D, points2D, mask, title):
    """ 绘制观测点与重投影点，内点为绿色，外点为红色 """
    mask = np.asarray(mask, dtype=bool)
    projected = camera.project(points3D)
    ax.scatter(points2D[mask, 0], points2D[mask, 1], s=6, c='g', label='inliers')
    ax.scatter(points2D[~mask, 0], points2D[~mask, 1], s=6, c='r', label='outliers')
    ax.scatter(projected[:, 0], projected[:, 1], s=2, c='b', label='reprojection')
    ax.set_title(title)
    ax.legend(loc='upper right')
    return ax


def drawConic(ax, conic, points, mask, title):
    """ 绘制二次曲线的零等值线与数据点 """
    mask = np.asarray(mask, dtype=bool)
    x_min, y_min = points.min(axis=0) - 1.0
    x_max, y_max = points.max(axis=0) + 1.0
    x, y = np.meshgrid(np.linspace(x_min, x_max, 300), np.linspace(y_min, y_max, 300))
    a, b, c, d, e, f = conic.coefficients
    ax.contour(x, y, a * x * x + b * x * y + c * y * y + d * x + e * y + f, levels=[0.0], colors='b')
    ax.scatter(points[mask, 0], points[mask, 1], s=6, c='g')
    ax.scatter(points[~mask, 0], points[~mask, 1], s=6, c='r')
    ax.set_title(title)
    return ax


def showFigure():
    plt.tight_layout()
    plt.show()
