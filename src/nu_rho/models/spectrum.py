import numpy as np


class Spectrum:
    """
    Neutrino mass-splitting container.

    Splittings are stored relative to the first mass state,
    Δm²_k1 = m_k² − m_1² [eV²], and may be injected with any connected set
    of pairs:
        Spectrum(3, dm2={(2, 1): 7.42e-5, (3, 2): 2.4428e-3})
    """

    def __init__(self, n_neutrinos: int, dm2: dict = None):
        if n_neutrinos < 1:
            raise ValueError("Number of mass states must be ≥ 1.")
        self._n_neutrinos = n_neutrinos
        self._dm2_k1 = np.zeros(n_neutrinos, dtype=float)
        if dm2:
            self.set_dm2_pairs(dm2)

    @classmethod
    def default(cls, n_neutrinos: int = 3) -> "Spectrum":
        values = {(2, 1): 7.5e-05, (3, 1): 0.00257}
        return cls(n_neutrinos, dm2={k: v for k, v in values.items() if k[0] <= n_neutrinos})

    @property
    def n_neutrinos(self):
        return self._n_neutrinos

    # ---------- Input of Δm² ----------
    def set_dm2(self, k: int, value: float):
        """Set Δm²_k1 (1-based k ≥ 2)."""
        if not (2 <= k <= self._n_neutrinos):
            raise IndexError(f"mass index {k} out of range 2..{self._n_neutrinos}")
        self._dm2_k1[k - 1] = float(value)

    def set_dm2_pairs(self, dm2: dict):
        """
        Set splittings from pairs {(i, j): Δm²_ij}, resolving each state
        against state 1 through the chain of given pairs.
        """
        seen = set()
        for (i, j) in dm2:
            if not (1 <= i <= self._n_neutrinos and 1 <= j <= self._n_neutrinos):
                raise IndexError(f"indices ({i},{j}) out of range for n={self._n_neutrinos}")
            if i == j:
                raise ValueError(f"Invalid Δm²({i},{j}): i and j must differ.")
            if (i, j) in seen or (j, i) in seen:
                raise ValueError(f"Redundant or conflicting entry for ({i},{j}) / ({j},{i}).")
            seen.add((i, j))

        known = {1: 0.0}
        pending = dict(dm2)
        while pending:
            progressed = False
            for (i, j), val in list(pending.items()):
                if j in known and i not in known:
                    known[i] = known[j] + val
                elif i in known and j not in known:
                    known[j] = known[i] - val
                elif i in known and j in known:
                    if not np.isclose(known[i] - known[j], val, rtol=1e-10, atol=0.0):
                        raise ValueError(f"Inconsistent Δm²({i},{j}) = {val}.")
                else:
                    continue
                del pending[(i, j)]
                progressed = True
            if not progressed:
                raise ValueError("Incomplete Δm² network: some states are disconnected from state 1.")

        for k, val in known.items():
            if k > 1:
                self._dm2_k1[k - 1] = val

    # ---------- Output ----------
    def get_dm2(self, i: int, j: int = 1) -> float:
        """Return Δm²_ij = m_i² − m_j² (1-based indices)."""
        for k in (i, j):
            if not (1 <= k <= self._n_neutrinos):
                raise IndexError(f"mass index {k} out of range 1..{self._n_neutrinos}")
        return float(self._dm2_k1[i - 1] - self._dm2_k1[j - 1])

    def splittings(self) -> np.ndarray:
        """Array [0, Δm²_21, Δm²_31, ...] of length n."""
        return self._dm2_k1.copy()

    def summary(self):
        print(f"Spectrum with {self.n_neutrinos} mass states:")
        for k in range(2, self.n_neutrinos + 1):
            print(f"  Δm²_{k}1 = {self._dm2_k1[k - 1]:.4e} eV²")
