"""Tests for the validity indices and bootstrap stability."""

import numpy as np
import pytest

from textclust.clustering.engines import kmeans
from textclust.clustering.periphery import reassign_periphery
from textclust.errors import InsufficientDataError
from textclust.evaluation.stability import bootstrap_stability, jaccard
from textclust.evaluation.validity import db_index, silhouette, validity_report
from textclust.models import ClusterAssignment, DocumentVectors

from conftest import make_blobs


def _assignment(labels, k=None, method="kmeans"):
    labels = np.asarray(labels)
    k = k if k is not None else int(labels.max()) + 1
    return ClusterAssignment(method=method, k=k, doc_ids=[str(i) for i in range(len(labels))], labels=labels)


def test_perfect_partition_scores_better_than_shuffled(blobs):
    X, y = blobs
    perfect = _assignment(y)
    shuffled = _assignment(np.random.default_rng(0).permutation(y))
    assert db_index(X, perfect) < db_index(X, shuffled)
    assert silhouette(X, perfect) > 0.5
    assert silhouette(X, shuffled) < 0.1


def test_single_cluster_is_insufficient(blobs):
    X, _ = blobs
    single = _assignment(np.zeros(len(X), dtype=int), k=1)
    with pytest.raises(InsufficientDataError) as excinfo:
        db_index(X, single)
    assert excinfo.value.stage == "validity"
    with pytest.raises(InsufficientDataError):
        silhouette(X, single)


def test_row_mismatch_raises(blobs):
    X, y = blobs
    with pytest.raises(ValueError):
        db_index(X[:-1], _assignment(y))


def test_document_vectors_are_aligned_by_id(blobs):
    X, y = blobs
    ids = tuple(str(i) for i in range(len(X)))
    vectors = DocumentVectors(doc_ids=ids[::-1], matrix=X[::-1])
    assert db_index(vectors, _assignment(y)) == pytest.approx(db_index(X, _assignment(y)))


def test_periphery_adjusted_db_matches_explicit_relabel():
    X, y = make_blobs([[0, 0], [10, 0], [0, 10]], n_per_blob=60, scale=0.5, seed=4)
    X = np.vstack([X, [[5.0, 5.0], [5.2, 5.1]]])
    labels = np.concatenate([y, [3, 3]])
    assignment = _assignment(labels)
    adjusted = db_index(X, assignment, periphery_fraction=0.2)
    explicit = db_index(X, reassign_periphery(assignment, 0.2))
    assert adjusted == pytest.approx(explicit)
    assert assignment.labels[-1] == 3


def test_validity_report_keys(blobs):
    X, y = blobs
    report = validity_report(X, _assignment(y))
    assert set(report) == {"davies_bouldin", "silhouette", "davies_bouldin_periphery"}
    assert report["davies_bouldin_periphery"] == pytest.approx(report["davies_bouldin"])


def test_silhouette_sampling_is_reproducible(blobs):
    X, y = blobs
    a = silhouette(X, _assignment(y), sample_size=60, rng=5)
    b = silhouette(X, _assignment(y), sample_size=60, rng=5)
    assert a == b


def test_jaccard():
    a = np.array([True, True, False, False])
    b = np.array([True, False, True, False])
    assert jaccard(a, b) == pytest.approx(1 / 3)
    assert jaccard(a, a) == 1.0
    assert jaccard(np.zeros(3, bool), np.zeros(3, bool)) == 0.0


def test_well_separated_clusters_are_stable():
    X, _ = make_blobs([[0, 0], [20, 0], [0, 20], [20, 20]], n_per_blob=50, scale=1.0, seed=2)
    result = bootstrap_stability(X, "kmeans", 4, B=20, rng=0, n_init=5)
    assert result.B == 20
    assert len(result.clusters) == 4
    assert result.mean() > 0.8
    assert np.all(result.jaccard > 0.8)
    assert np.all(result.jaccard <= 1.0)
    assert np.all(result.valid_resamples == 20)


def test_tiny_cluster_scores_lower_than_big_ones():
    X, y = make_blobs([[0, 0], [12, 0], [0, 12]], n_per_blob=100, scale=1.0, seed=3)
    tiny = np.array([1.5, 1.5]) + 0.1 * np.random.default_rng(9).standard_normal((3, 2))
    X = np.vstack([X, tiny])
    reference = _assignment(np.concatenate([y, [3, 3, 3]]))
    result = bootstrap_stability(X, "kmeans", 4, B=20, rng=1, reference=reference, n_init=5)
    scores = result.as_dict()
    big = np.nanmean([scores[0], scores[1], scores[2]])
    assert scores[3] < 0.3
    assert big > scores[3] + 0.3


def test_serial_and_parallel_agree(blobs):
    X, _ = blobs
    serial = bootstrap_stability(X, "kmeans", 3, B=4, rng=7, n_init=2)
    parallel = bootstrap_stability(X, "kmeans", 3, B=4, rng=7, n_init=2, n_jobs=2)
    assert np.allclose(serial.jaccard, parallel.jaccard)
    assert np.array_equal(serial.recovered, parallel.recovered)


def test_callable_method(blobs):
    X, _ = blobs

    def split_on_x(data, k, rng):
        return (data[:, 0] > 0).astype(int)

    result = bootstrap_stability(X, split_on_x, 2, B=5, rng=0)
    assert result.method == "split_on_x"
    assert np.allclose(result.jaccard, 1.0)
    assert np.all(result.dissolved == 0)
    assert np.all(result.recovered == 5)


def test_gmm_stability_runs_with_small_budget(blobs):
    X, _ = blobs
    result = bootstrap_stability(X, "gmm", 3, B=3, rng=0, covariance_types=("spherical",))
    assert result.method == "gmm"
    assert result.mean() > 0.8


def test_zero_resamples_gives_nan(blobs):
    X, _ = blobs
    result = bootstrap_stability(X, "kmeans", 3, B=0, rng=0, n_init=1)
    assert np.all(np.isnan(result.jaccard))
    assert np.isnan(result.mean())


def test_bad_arguments(blobs):
    X, _ = blobs
    with pytest.raises(ValueError):
        bootstrap_stability(X, "spectral", 3, B=2)
    with pytest.raises(ValueError):
        bootstrap_stability(X, "kmeans", 3, B=-1)


def test_stability_uses_reference_without_mutating_it(blobs):
    X, _ = blobs
    reference = kmeans(X, 3, n_init=2, rng=0)
    before = reference.labels.copy()
    result = bootstrap_stability(X, "kmeans", 3, B=3, rng=0, reference=reference, n_init=2)
    assert result.clusters == (0, 1, 2)
    assert np.array_equal(reference.labels, before)


def test_silhouette_sample_with_one_label_is_insufficient():
    X, _ = make_blobs([[0, 0], [10, 10]], n_per_blob=50, scale=0.5, seed=6)
    skewed = _assignment(np.array([0] * 98 + [1] * 2))
    failures = 0
    for seed in range(20):
        try:
            silhouette(X, skewed, sample_size=3, rng=seed)
        except InsufficientDataError as e:
            assert e.stage == "validity"
            assert e.configuration == "kmeans/k=2"
            failures += 1
    assert failures > 0
