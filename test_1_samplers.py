import numpy as np
import pytest

from sampler import ProsacSampler, UniformSampler
from utils.uniform_random_generator import UniformRandomGenerator


def test_uniform_random_generator_is_reproducible():
    first = UniformRandomGenerator(seed=7)
    second = UniformRandomGenerator(seed=7)
    for _ in range(20):
        assert first.generateUniqueRandomSet(5, max=30) == second.generateUniqueRandomSet(5, max=30)


def test_uniform_random_generator_respects_range_and_skip():
    generator = UniformRandomGenerator(seed=1)
    generator.resetGenerator(3, 8)
    for _ in range(50):
        sample = generator.generateUniqueRandomSet(5, to_skip=5)
        assert len(set(sample)) == 5
        assert all(3 <= i <= 8 and i != 5 for i in sample)
    # 可选的数不够时返回空列表
    assert generator.generateUniqueRandomSet(6, to_skip=5) == []


def test_uniform_sampler_draws_unique_indices_from_pool():
    points = np.zeros((40, 2))
    sampler = UniformSampler(points, UniformRandomGenerator(seed=3))
    pool = np.arange(10, 40)
    for _ in range(100):
        sample = sampler.sample(pool, 6)
        assert len(sample) == 6
        assert len(set(sample)) == 6
        assert all(10 <= i < 40 for i in sample)


def test_uniform_sampler_pool_too_small():
    sampler = UniformSampler(np.zeros((4, 2)))
    assert sampler.sample(np.arange(4), 5) == []


def test_prosac_first_sample_uses_best_points():
    point_number, sample_size = 50, 6
    quality_scores = np.arange(point_number, dtype=float)
    sampler = ProsacSampler(np.zeros((point_number, 2)),
                            sample_size,
                            quality_scores,
                            ransac_convergence_iterations=1000,
                            random_generator=UniformRandomGenerator(seed=0))
    sample = sampler.sample(np.arange(point_number), sample_size)
    assert sorted(sample) == list(range(point_number - sample_size, point_number))


def test_prosac_breaks_ties_by_original_index():
    sampler = ProsacSampler(np.zeros((20, 2)), 4, np.ones(20), random_generator=UniformRandomGenerator(seed=0))
    assert list(sampler.sorted_indices) == list(range(20))
    assert sorted(sampler.sample(np.arange(20), 4)) == [0, 1, 2, 3]


def test_prosac_subset_grows_and_becomes_uniform():
    point_number, sample_size = 30, 4
    quality_scores = np.random.default_rng(5).random(point_number)
    sampler = ProsacSampler(np.zeros((point_number, 2)),
                            sample_size,
                            quality_scores,
                            ransac_convergence_iterations=200,
                            random_generator=UniformRandomGenerator(seed=5))
    ranks = np.empty(point_number, dtype=int)
    ranks[sampler.sorted_indices] = np.arange(point_number)

    previous_subset_size = sampler.subset_size
    for _ in range(200):
        subset_size = sampler.subset_size
        assert subset_size >= previous_subset_size
        previous_subset_size = subset_size

        sample = sampler.sample(np.arange(point_number), sample_size)
        assert len(set(sample)) == sample_size
        sample_ranks = ranks[sample]
        # 最后一个点总是当前前缀的最后一个点
        assert sample_ranks[-1] == subset_size - 1
        assert np.all(sample_ranks < subset_size)

    assert sampler.largest_sample_size > sample_size
    # 超过 T_N 次后在全部点中采样
    for _ in range(50):
        sample = sampler.sample(np.arange(point_number), sample_size)
        assert len(set(sample)) == sample_size
        assert all(0 <= i < point_number for i in sample)


def test_prosac_rejects_mismatched_quality_scores():
    with pytest.raises(ValueError):
        ProsacSampler(np.zeros((10, 2)), 4, np.ones(9))
