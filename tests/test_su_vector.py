import numpy as np
import pytest

from nu_rho.state.su_vector import SUVector, anticommutator, commutator, inner


def _random_hermitian(n, batch=(), seed=0):
    rng = np.random.default_rng(seed)
    a = rng.normal(size=batch + (n, n)) + 1j * rng.normal(size=batch + (n, n))
    return SUVector(a + np.conjugate(np.swapaxes(a, -1, -2)))


def test_projectors_and_inner_product():
    p0 = SUVector.projector(3, 0)
    p1 = SUVector.projector(3, 1)
    assert np.isclose(p0 * p0, 1.0)
    assert np.isclose(p0 * p1, 0.0)
    assert np.isclose(p0.trace(), 1.0)
    with pytest.raises(IndexError):
        SUVector.projector(3, 3)


def test_dimension_limits():
    with pytest.raises(ValueError):
        SUVector(np.zeros((7, 7)))
    with pytest.raises(ValueError):
        SUVector(np.zeros((2, 3)))


def test_batched_scaling():
    ops = SUVector.stack([SUVector.projector(2, 0), SUVector.projector(2, 1)])
    scaled = ops * np.array([2.0, 3.0])
    assert scaled.shape == (2,)
    assert np.allclose(scaled.trace(), [2.0, 3.0])
    assert np.allclose((np.array([2.0, 3.0]) * ops).matrix, scaled.matrix)
    assert np.allclose((scaled / 2.0).trace(), [1.0, 1.5])


def test_components_layout():
    m = np.array([[1.0, 2.0 + 3.0j], [2.0 - 3.0j, 4.0]])
    v = SUVector(m)
    assert np.allclose(v.components(), [1.0, 2.0, 3.0, 4.0])
    back = SUVector.from_components(v.components())
    assert np.allclose(back.matrix, m)
    with pytest.raises(ValueError):
        SUVector.from_components(np.zeros(5))


def test_evolve_is_unitary():
    h = _random_hermitian(3, seed=1)
    rho = _random_hermitian(3, seed=2)
    evolved = rho.evolve(h, 1.7)
    # spectrum and trace are conserved, the inverse evolution goes back
    assert np.allclose(np.linalg.eigvalsh(evolved.matrix), np.linalg.eigvalsh(rho.matrix))
    assert np.allclose(evolved.evolve(h, -1.7).matrix, rho.matrix)
    # an operator commuting with h is left alone
    assert np.allclose(h.evolve(h, 3.0).matrix, h.matrix)


def test_evolve_broadcasts_over_batch():
    h = _random_hermitian(2, batch=(4,), seed=3)
    p = SUVector.projector(2, 0)
    out = SUVector.stack([p, p])[:, None].evolve(h, 0.5)
    assert out.shape == (2, 4)
    assert np.allclose(out[0].matrix, out[1].matrix)


def test_commutators():
    a = _random_hermitian(3, seed=4)
    b = _random_hermitian(3, seed=5)
    c = commutator(a, b)
    ac = anticommutator(a, b)
    assert np.allclose(c.matrix, -commutator(b, a).matrix)
    assert np.allclose((c + ac).matrix, 2.0 * a.matrix @ b.matrix)
    assert np.isclose(inner(a, b), np.real(np.trace(a.matrix @ b.matrix)))
