"""Tests for co-occurrence counting, GloVe training and document vectors."""

import numpy as np
import pytest
from scipy import sparse

from textclust.embeddings.cooccurrence import build_cooccurrence
from textclust.embeddings.glove import GloVe, train_embeddings
from textclust.embeddings.vectorizer import vectorize, vectorize_corpus
from textclust.errors import MissingDocumentVectorError
from textclust.models import MISSING, Document, EmbeddingTable, Vocabulary
from textclust.text.vocabulary import build_vocabulary


def _vocab(*terms):
    return Vocabulary(terms=terms, counts=(1,) * len(terms), min_count=1)


def _corpus_matrix(corpus_documents, min_count=2):
    tokens = [d.tokens for d in corpus_documents]
    vocab = build_vocabulary(tokens, min_count=min_count)
    return vocab, build_cooccurrence(tokens, vocab, window=5)


def test_cooccurrence_distance_weights():
    vocab = _vocab("a", "b", "c")
    m = build_cooccurrence([["a", "b", "c"]], vocab, window=2).toarray()
    assert m[0, 1] == pytest.approx(1.0)
    assert m[1, 2] == pytest.approx(1.0)
    assert m[0, 2] == pytest.approx(0.5)
    assert m[0, 0] == 0.0


def test_cooccurrence_window_limits_pairs():
    vocab = _vocab("a", "b", "c")
    m = build_cooccurrence([["a", "b", "c"]], vocab, window=1)
    assert m[0, 2] == 0.0
    assert m.nnz == 4


def test_cooccurrence_skips_out_of_vocabulary_tokens():
    vocab = _vocab("a", "b")
    m = build_cooccurrence([["a", "zzz", "b"]], vocab, window=1).toarray()
    assert m[0, 1] == 0.0
    assert m.shape == (2, 2)


def test_out_of_vocabulary_tokens_keep_their_positions():
    vocab = _vocab("a", "b")
    m = build_cooccurrence([["a", "zzz", "b"]], vocab, window=5).toarray()
    assert m[0, 1] == pytest.approx(0.5)
    assert m[1, 0] == pytest.approx(0.5)

    far = build_cooccurrence([["a", "x", "y", "b"], ["a", "b"]], vocab, window=1).toarray()
    assert far[0, 1] == pytest.approx(1.0)


def test_cooccurrence_repeated_token_on_diagonal():
    vocab = _vocab("a")
    m = build_cooccurrence([["a", "a"]], vocab, window=5).toarray()
    assert m[0, 0] == pytest.approx(2.0)


def test_cooccurrence_is_symmetric(corpus_documents):
    _, m = _corpus_matrix(corpus_documents)
    assert sparse.issparse(m)
    assert abs(m - m.T).max() < 1e-12


def test_cooccurrence_is_deterministic(corpus_documents):
    _, first = _corpus_matrix(corpus_documents)
    _, second = _corpus_matrix(corpus_documents)
    assert (first != second).nnz == 0


def test_cooccurrence_rejects_bad_window():
    with pytest.raises(ValueError):
        build_cooccurrence([["a"]], _vocab("a"), window=0)


def test_glove_weighting_function():
    model = GloVe(x_max=10.0, alpha=0.75)
    w = model.weights(np.array([5.0, 10.0, 50.0]))
    assert w[0] == pytest.approx(0.5 ** 0.75)
    assert w[1] == pytest.approx(1.0)
    assert w[2] == pytest.approx(1.0)


def test_train_embeddings_shape_and_terms(corpus_documents):
    vocab, m = _corpus_matrix(corpus_documents)
    table = train_embeddings(m, rank=8, n_iter=5, vocabulary=vocab, rng=0)
    assert table.vectors.shape == (len(vocab), 8)
    assert table.terms == vocab.terms
    assert not table.vectors.flags.writeable


def test_train_embeddings_is_reproducible(corpus_documents):
    vocab, m = _corpus_matrix(corpus_documents)
    a = train_embeddings(m, rank=8, n_iter=5, vocabulary=vocab, rng=3)
    b = train_embeddings(m, rank=8, n_iter=5, vocabulary=vocab, rng=3)
    c = train_embeddings(m, rank=8, n_iter=5, vocabulary=vocab, rng=4)
    assert np.array_equal(a.vectors, b.vectors)
    assert not np.allclose(a.vectors, c.vectors)


def test_training_reduces_loss(corpus_documents):
    vocab, m = _corpus_matrix(corpus_documents)
    table = train_embeddings(m, rank=10, n_iter=15, vocabulary=vocab, rng=0, batch_size=32, convergence_tol=0.0)
    assert table.n_iter == 15
    assert table.loss_history[-1] < table.loss_history[0]


def test_non_convergence_is_flagged_not_raised(corpus_documents):
    vocab, m = _corpus_matrix(corpus_documents)
    table = train_embeddings(m, rank=4, n_iter=1, vocabulary=vocab, rng=0)
    assert table.converged is False
    assert table.n_iter == 1


def test_convergence_stops_early(corpus_documents):
    vocab, m = _corpus_matrix(corpus_documents)
    table = train_embeddings(m, rank=4, n_iter=10, vocabulary=vocab, rng=0, convergence_tol=10.0)
    assert table.converged is True
    assert table.n_iter == 2


def test_combine_modes():
    m = build_cooccurrence([["a", "b", "c", "a", "b"]], _vocab("a", "b", "c"), window=2)
    model = GloVe(rank=2, n_iter=3, rng=1, combine="sum").fit(m)
    assert np.allclose(model.components_, model.word_vectors_ + model.context_vectors_)
    model.combine = "main"
    assert np.allclose(model.components_, model.word_vectors_)
    model.combine = "mean"
    assert np.allclose(model.components_, (model.word_vectors_ + model.context_vectors_) / 2)


def test_rank_larger_than_vocabulary_is_allowed():
    m = build_cooccurrence([["a", "b", "c", "a"]], _vocab("a", "b", "c"), window=2)
    table = train_embeddings(m, rank=10, n_iter=2, rng=0)
    assert table.vectors.shape == (3, 10)
    assert table.terms == ("0", "1", "2")


def test_empty_matrix_cannot_be_trained():
    with pytest.raises(ValueError):
        train_embeddings(sparse.csr_matrix((3, 3)), rank=2)


def _table():
    return EmbeddingTable(terms=("good", "bad"), vectors=np.array([[1.0, 0.0], [0.0, 1.0]]))


def test_vectorize_averages_found_rows():
    doc = Document(doc_id="d", text="good bad unknown", tokens=("good", "bad", "unknown"))
    assert np.allclose(vectorize(doc, _table()), [0.5, 0.5])


def test_vectorize_is_idempotent():
    doc = Document(doc_id="d", text="good good bad", tokens=("good", "good", "bad"))
    first = vectorize(doc, _table())
    second = vectorize(doc, _table())
    assert np.array_equal(first, second)
    assert np.allclose(first, [2 / 3, 1 / 3])


def test_vectorize_all_oov_is_missing():
    doc = Document(doc_id="d", text="nothing known", tokens=("nothing", "known"))
    result = vectorize(doc, _table())
    assert result is MISSING
    assert not result


def test_vectorize_raw_source_retokenizes_text():
    doc = Document(doc_id="d", text="Good good, bad!", tokens=("good",))
    assert np.allclose(vectorize(doc, _table(), source="cleaned"), [1.0, 0.0])
    # "Good" keeps its capital in raw mode and misses the table
    assert np.allclose(vectorize(doc, _table(), source="raw"), [0.5, 0.5])
    with pytest.raises(ValueError):
        vectorize(doc, _table(), source="lemmas")


def test_vectorize_corpus_excludes_missing():
    docs = [
        Document(doc_id="0", text="good", tokens=("good",)),
        Document(doc_id="1", text="bad", tokens=("bad",)),
        Document(doc_id="2", text="unseen", tokens=("unseen",)),
    ]
    vectors = vectorize_corpus(docs, _table())
    assert vectors.doc_ids == ("0", "1")
    assert vectors.missing == ("2",)
    assert vectors.matrix.shape == (2, 2)
    assert not np.any(np.all(vectors.matrix == 0, axis=1))


def test_vectorize_corpus_strict_raises():
    docs = [Document(doc_id="lonely", text="unseen", tokens=("unseen",))]
    with pytest.raises(MissingDocumentVectorError) as excinfo:
        vectorize_corpus(docs, _table(), strict=True)
    assert excinfo.value.doc_id == "lonely"


class _ScaledTable(EmbeddingTable):
    def lookup(self, term):
        row = super().lookup(term)
        return None if row is None else 2 * row


def test_vectorize_reads_rows_through_lookup():
    table = _table()
    assert np.array_equal(table.lookup("good"), [1.0, 0.0])
    assert table.lookup("unknown") is None

    scaled = _ScaledTable(terms=table.terms, vectors=table.vectors)
    doc = Document(doc_id="d", text="good bad", tokens=("good", "bad"))
    assert np.allclose(vectorize(doc, scaled), [1.0, 1.0])
