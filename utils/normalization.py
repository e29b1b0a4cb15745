import math as m

import numpy as np


def toInhomogeneous(points, dimension):
    """ 将点集转换为非齐次坐标

    参数
    ----------
    points : numpy
        (N, dimension) 非齐次坐标或 (N, dimension + 1) 齐次坐标
    dimension : int
        点的维数，2 或 3

    返回
    ----------
    numpy
        (N, dimension) 非齐次坐标
    """
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2:
        raise ValueError(f"Expected a 2D array of points, got shape {points.shape}")
    if points.shape[1] == dimension:
        return points.copy()
    if points.shape[1] == dimension + 1:
        w = points[:, dimension:dimension + 1]
        if np.any(np.abs(w) < np.finfo(np.float64).eps):
            raise ValueError("Points at infinity cannot be converted to inhomogeneous coordinates")
        return points[:, 0:dimension] / w
    raise ValueError(f"Expected points with {dimension} or {dimension + 1} columns, got {points.shape[1]}")


def normalizingTransform(points):
    """ 计算点集的归一化变换：平移到质心，并缩放使平均距离为 sqrt(维数)

    参数
    ----------
    points : numpy
        (N, d) 非齐次点集

    返回
    ----------
    numpy, numpy
        归一化后的点集，(d+1)x(d+1) 归一化变换矩阵
    """
    sample_number, dimension = np.shape(points)

    # 计算质点坐标 均值
    mass_point = np.mean(points, axis=0)

    # 求解点离质点的平均距离
    average_distance = np.mean(np.sqrt(np.sum((points - mass_point) ** 2, axis=1)))
    if average_distance < np.finfo(np.float64).eps:
        # 所有点重合，无法归一化
        raise ValueError("Coincident points cannot be normalized")

    # 计算 sqrt(d) / 平均距离 的比率
    ratio = m.sqrt(dimension) / average_distance

    normalized_points = (points - mass_point) * ratio

    # 创建归一化转换
    transform = np.eye(dimension + 1)
    transform[0:dimension, 0:dimension] *= ratio
    transform[0:dimension, dimension] = -ratio * mass_point
    return normalized_points, transform
