"""GloVe word vectors trained from a co-occurrence matrix.

Minimizes the weighted least-squares objective

    J = sum_ij f(X_ij) (w_i . w~_j + b_i + b~_j - log X_ij)^2
    f(x) = min(1, (x / x_max) ** alpha)

over the stored (nonzero) entries of X only, with AdaGrad updates on shuffled
mini-batches. Entries are visited in an order drawn from the injected
generator, so a fixed seed reproduces the same vectors.
"""

import logging

import numpy as np
from scipy import sparse

from ..config import COMBINE_MODES
from ..models import EmbeddingTable, Vocabulary, make_rng

logger = logging.getLogger(__name__)


def _adagrad_step(param: np.ndarray, gradsq: np.ndarray, idx: np.ndarray, grad: np.ndarray, lr: float) -> None:
    """Apply one AdaGrad update, averaging the gradients of rows repeated in the batch."""
    rows, inverse = np.unique(idx, return_inverse=True)
    acc = np.zeros((rows.shape[0],) + grad.shape[1:])
    np.add.at(acc, inverse, grad)
    counts = np.bincount(inverse, minlength=rows.shape[0]).astype(np.float64)
    acc /= counts.reshape((-1,) + (1,) * (acc.ndim - 1))
    param[rows] -= lr * acc / np.sqrt(gradsq[rows])
    gradsq[rows] += acc ** 2


class GloVe:
    """Weighted least-squares factorization of a co-occurrence matrix."""

    def __init__(
        self,
        rank: int = 50,
        x_max: float = 10.0,
        n_iter: int = 20,
        learning_rate: float = 0.15,
        alpha: float = 0.75,
        batch_size: int = 128,
        convergence_tol: float = 0.001,
        combine: str = "sum",
        rng: np.random.Generator | int | None = None,
    ):
        if rank < 1:
            raise ValueError(f"rank must be >= 1, got {rank}")
        if combine not in COMBINE_MODES:
            raise ValueError(f"combine must be one of {COMBINE_MODES}, got {combine!r}")
        self.rank = rank
        self.x_max = x_max
        self.n_iter = n_iter
        self.learning_rate = learning_rate
        self.alpha = alpha
        self.batch_size = batch_size
        self.convergence_tol = convergence_tol
        self.combine = combine
        self.rng = make_rng(rng)

    def weights(self, x: np.ndarray) -> np.ndarray:
        return np.minimum(1.0, (x / self.x_max) ** self.alpha)

    def fit(self, cooccurrence: sparse.spmatrix) -> "GloVe":
        coo = sparse.coo_matrix(cooccurrence)
        if coo.shape[0] != coo.shape[1]:
            raise ValueError(f"Co-occurrence matrix must be square, got {coo.shape}")
        positive = coo.data > 0
        rows, cols, x = coo.row[positive], coo.col[positive], coo.data[positive]
        if x.size == 0:
            raise ValueError("Co-occurrence matrix has no positive entries to train on")

        v, d = coo.shape[0], self.rank
        if d >= v:
            logger.warning(f"Embedding rank {d} >= vocabulary size {v}; vectors will be overparameterized")

        rng = self.rng
        w = (rng.random((v, d)) - 0.5) / d
        c = (rng.random((v, d)) - 0.5) / d
        bw = (rng.random(v) - 0.5) / d
        bc = (rng.random(v) - 0.5) / d
        gw, gc = np.ones_like(w), np.ones_like(c)
        gbw, gbc = np.ones_like(bw), np.ones_like(bc)

        log_x = np.log(x)
        fx = self.weights(x)
        lr = self.learning_rate

        self.loss_history_: list[float] = []
        self.converged_ = False
        for epoch in range(self.n_iter):
            order = rng.permutation(x.size)
            loss = 0.0
            for start in range(0, x.size, self.batch_size):
                batch = order[start:start + self.batch_size]
                i, j = rows[batch], cols[batch]
                diff = np.einsum("bd,bd->b", w[i], c[j]) + bw[i] + bc[j] - log_x[batch]
                fdiff = fx[batch] * diff
                loss += 0.5 * float(np.dot(fdiff, diff))

                grad_w = fdiff[:, None] * c[j]
                grad_c = fdiff[:, None] * w[i]
                _adagrad_step(w, gw, i, grad_w, lr)
                _adagrad_step(c, gc, j, grad_c, lr)
                _adagrad_step(bw, gbw, i, fdiff, lr)
                _adagrad_step(bc, gbc, j, fdiff, lr)

            loss /= x.size
            if not np.isfinite(loss):
                raise FloatingPointError(f"GloVe loss diverged at pass {epoch + 1}; lower the learning rate")
            logger.debug(f"GloVe pass {epoch + 1}/{self.n_iter}: loss={loss:.6f}")

            prev = self.loss_history_[-1] if self.loss_history_ else None
            self.loss_history_.append(loss)
            if prev is not None and abs(prev - loss) / max(prev, 1e-12) < self.convergence_tol:
                self.converged_ = True
                break

        self.n_iter_ = len(self.loss_history_)
        if not self.converged_:
            logger.warning(
                f"GloVe did not reach convergence_tol={self.convergence_tol} in {self.n_iter} passes "
                f"(final loss {self.loss_history_[-1]:.6f})"
            )

        self.word_vectors_ = w
        self.context_vectors_ = c
        return self

    @property
    def components_(self) -> np.ndarray:
        """Final per-term vectors, combining the word and context roles."""
        if self.combine == "sum":
            return self.word_vectors_ + self.context_vectors_
        if self.combine == "mean":
            return (self.word_vectors_ + self.context_vectors_) / 2.0
        return self.word_vectors_.copy()

    def fit_transform(self, cooccurrence: sparse.spmatrix) -> np.ndarray:
        return self.fit(cooccurrence).components_


def train_embeddings(
    cooccurrence: sparse.spmatrix,
    rank: int = 50,
    x_max: float = 10.0,
    n_iter: int = 20,
    *,
    vocabulary: Vocabulary | None = None,
    rng: np.random.Generator | int | None = None,
    **kwargs,
) -> EmbeddingTable:
    """Train GloVe vectors and wrap them in an EmbeddingTable.

    Extra keyword arguments (learning_rate, alpha, batch_size,
    convergence_tol, combine) are passed to :class:`GloVe`.
    """
    model = GloVe(rank=rank, x_max=x_max, n_iter=n_iter, rng=rng, **kwargs)
    vectors = model.fit_transform(cooccurrence)

    if vocabulary is not None:
        if len(vocabulary) != vectors.shape[0]:
            raise ValueError(f"Vocabulary has {len(vocabulary)} terms but matrix has {vectors.shape[0]} rows")
        terms = vocabulary.terms
    else:
        terms = tuple(str(i) for i in range(vectors.shape[0]))

    return EmbeddingTable(
        terms=terms,
        vectors=vectors,
        converged=model.converged_,
        n_iter=model.n_iter_,
        loss_history=tuple(model.loss_history_),
    )
