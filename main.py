import logging
from time import time

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np

import robust as rb
from utils_helper import *


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # 生成带有 20% 外点的合成相机数据
    data = generatePinholeCameraData(point_number=500, outlier_ratio=0.2, inlier_std=0.5, seed=0)
    points3D, points2D = data["points3D"], data["points2D"]
    print(f"Points number = {len(points3D)}, outliers = {np.count_nonzero(data['outliers'])}", '\n')

    methods = [rb.RobustEstimatorMethod.RANSAC,
               rb.RobustEstimatorMethod.MSAC,
               rb.RobustEstimatorMethod.LMEDS,
               rb.RobustEstimatorMethod.PROSAC,
               rb.RobustEstimatorMethod.PROMEDS]

    plt.figure(figsize=(15, 8))
    mpl.rcParams.update({'font.size': 8})
    for i, method in enumerate(methods):
        t = time()
        camera, mask = rb.findPinholeCamera(points3D,
                                            points2D,
                                            quality_scores=data["quality_scores"],
                                            method=method,
                                            threshold=2.0,
                                            seed=0)
        print(method.name)
        print('Inlier number = ', mask.sum() / np.shape(points3D)[0])
        print('Error = ', getReprojectionError(camera, points3D[~data["outliers"]], points2D[~data["outliers"]]))
        print('Elapsed time = ', time() - t, '\n')

        drawReprojection(plt.subplot(2, 3, i + 1), camera, points3D, points2D, mask, method.name)

    # 二次曲线拟合
    conic_data = generateConicData(point_number=200, outlier_ratio=0.3, seed=0)
    conic, mask = rb.findConic(conic_data["points"], seed=0)
    print('Conic error = ', getConicError(conic, conic_data["points"][mask.astype(bool)]))
    drawConic(plt.subplot(2, 3, 6), conic, conic_data["points"], mask, "conic")

    showFigure()
