"""
Batched generalized vectors: Hermitian n×n operators used both as
projectors and as density matrices.

An `SUVector` wraps a complex array of shape (..., n, n); every operation
broadcasts over the leading batch axes, so a whole energy grid of density
matrices is one object.
"""
import numpy as np

from nu_rho.utils.flavors import MAX_FLAVORS


class SUVector:
    __slots__ = ("matrix",)
    __array_ufunc__ = None    # make `ndarray * SUVector` defer to __rmul__

    def __init__(self, matrix):
        m = np.asarray(matrix, dtype=np.complex128)
        if m.ndim < 2 or m.shape[-1] != m.shape[-2]:
            raise ValueError(f"SUVector expects (..., n, n) arrays, got shape {m.shape}")
        if m.shape[-1] > MAX_FLAVORS:
            raise ValueError(f"dimension {m.shape[-1]} exceeds the maximum of {MAX_FLAVORS}")
        self.matrix = m

    # ---------- constructors ----------
    @classmethod
    def projector(cls, dim: int, index: int):
        """|index><index| in the canonical basis."""
        if not 0 <= index < dim:
            raise IndexError(f"projector index {index} out of range for dim={dim}")
        m = np.zeros((dim, dim), dtype=np.complex128)
        m[index, index] = 1.0
        return cls(m)

    @classmethod
    def stack(cls, vectors, axis=0):
        return cls(np.stack([v.matrix for v in vectors], axis=axis))

    # ---------- shape ----------
    @property
    def dim(self) -> int:
        return self.matrix.shape[-1]

    @property
    def shape(self):
        """Batch shape (without the trailing n×n)."""
        return self.matrix.shape[:-2]

    def __getitem__(self, item):
        if not isinstance(item, tuple):
            item = (item,)
        return SUVector(self.matrix[item + (Ellipsis, slice(None), slice(None))])

    def copy(self):
        return SUVector(self.matrix.copy())

    # ---------- linear algebra ----------
    def __add__(self, other):
        return SUVector(self.matrix + _as_matrix(other))

    def __sub__(self, other):
        return SUVector(self.matrix - _as_matrix(other))

    def __neg__(self):
        return SUVector(-self.matrix)

    def __mul__(self, other):
        # SUVector * SUVector is the inner product, anything else scales
        if isinstance(other, SUVector):
            return inner(self, other)
        return SUVector(self.matrix * _weights(other))

    __rmul__ = __mul__

    def __truediv__(self, other):
        return SUVector(self.matrix / _weights(other))

    def trace(self):
        return np.real(np.trace(self.matrix, axis1=-2, axis2=-1))

    def rotate(self, U):
        """Change of basis M -> U† M U (mass -> flavor projectors with U the mixing matrix)."""
        U = np.asarray(U, dtype=np.complex128)
        Ud = np.conjugate(np.swapaxes(U, -1, -2))
        return SUVector(Ud @ self.matrix @ U)

    def evolve(self, h, t):
        """
        Interaction-picture evolution e^{i h t} M e^{-i h t}.

        `h` is an SUVector (broadcastable against self), `t` a path interval
        [eV^-1], scalar or broadcastable against the batch shape of `h`.
        """
        h = h.matrix if isinstance(h, SUVector) else np.asarray(h, dtype=np.complex128)
        w, V = np.linalg.eigh(h)
        t = np.asarray(t, dtype=float)
        phases = np.exp(1j * w * t[..., None])
        S = (V * phases[..., None, :]) @ np.conjugate(np.swapaxes(V, -1, -2))
        Sd = np.conjugate(np.swapaxes(S, -1, -2))
        return SUVector(S @ self.matrix @ Sd)

    # ---------- persistence layout ----------
    def components(self) -> np.ndarray:
        """
        n² real components, shape (..., n²).

        Index i*n + j holds Re M_ii on the diagonal, Re M_ij for i < j and
        Im M_ji for i > j.
        """
        n = self.dim
        m = self.matrix
        out = np.empty(self.shape + (n, n), dtype=float)
        iu = np.triu_indices(n, 1)
        il = (iu[1], iu[0])
        d = np.arange(n)
        out[..., d, d] = m[..., d, d].real
        out[..., iu[0], iu[1]] = m[..., iu[0], iu[1]].real
        out[..., il[0], il[1]] = m[..., iu[0], iu[1]].imag
        return out.reshape(self.shape + (n * n,))

    @classmethod
    def from_components(cls, components):
        c = np.asarray(components, dtype=float)
        n = int(round(np.sqrt(c.shape[-1])))
        if n * n != c.shape[-1]:
            raise ValueError(f"{c.shape[-1]} components do not describe a square operator")
        c = c.reshape(c.shape[:-1] + (n, n))
        m = np.zeros(c.shape, dtype=np.complex128)
        iu = np.triu_indices(n, 1)
        d = np.arange(n)
        m[..., d, d] = c[..., d, d]
        upper = c[..., iu[0], iu[1]] + 1j * c[..., iu[1], iu[0]]
        m[..., iu[0], iu[1]] = upper
        m[..., iu[1], iu[0]] = np.conjugate(upper)
        return cls(m)

    def __repr__(self):
        return f"SUVector(dim={self.dim}, batch={self.shape})"


def _as_matrix(x):
    return x.matrix if isinstance(x, SUVector) else x


def _weights(w):
    w = np.asarray(w)
    if w.ndim == 0:
        return w
    return w[..., None, None]


def inner(a: SUVector, b: SUVector):
    """Tr(a·b) for Hermitian operators; real, batched."""
    return np.real(np.einsum("...ij,...ji->...", a.matrix, b.matrix))


def commutator(a: SUVector, b: SUVector) -> SUVector:
    return SUVector(a.matrix @ b.matrix - b.matrix @ a.matrix)


def anticommutator(a: SUVector, b: SUVector) -> SUVector:
    return SUVector(a.matrix @ b.matrix + b.matrix @ a.matrix)
