from contextlib import contextmanager

import numpy as np


class Mixing:
    """
    Generic N-flavor neutrino mixing matrix definition.
    Angles (theta) and Dirac phases (delta) are keyed by 1-based pairs (i, j), i < j.
    """
    def __init__(
          self,
          n_neutrinos: int,
          mixing_angles: dict = None,
          dirac_phases: dict = None,
    ):
        self.n_neutrinos = n_neutrinos
        self.mixing_angles = dict()
        self.dirac_phases = dict()
        for (i, j), theta in (mixing_angles or dict()).items():
            self.set_angle(i, j, theta)
        for (i, j), delta in (dirac_phases or dict()).items():
            self.set_phase(i, j, delta)

    @classmethod
    def default(cls, n_neutrinos: int = 3) -> "Mixing":
        """Normal ordering best fit of arXiv:1409.5439 with delta_CP = 0."""
        angles = {(1, 2): 0.583996, (1, 3): 0.148190, (2, 3): 0.737324}
        angles = {k: v for k, v in angles.items() if max(k) <= n_neutrinos}
        phases = {(1, 3): 0.0} if n_neutrinos >= 3 else {}
        return cls(n_neutrinos=n_neutrinos, mixing_angles=angles, dirac_phases=phases)

    # ------------------------------------------------------------

    def _check_pair(self, i, j):
        if not (1 <= i <= self.n_neutrinos and 1 <= j <= self.n_neutrinos):
            raise IndexError(f"indices ({i},{j}) out of range for n={self.n_neutrinos}")
        if i >= j:
            raise ValueError(f"Invalid pair ({i},{j}): expected i < j.")

    def set_angle(self, i: int, j: int, theta: float):
        self._check_pair(i, j)
        self.mixing_angles[(i, j)] = float(theta)

    def get_angle(self, i: int, j: int) -> float:
        self._check_pair(i, j)
        return self.mixing_angles.get((i, j), 0.0)

    def set_phase(self, i: int, j: int, delta: float):
        self._check_pair(i, j)
        self.dirac_phases[(i, j)] = float(delta)

    def get_phase(self, i: int, j: int) -> float:
        self._check_pair(i, j)
        return self.dirac_phases.get((i, j), 0.0)

    def pairs(self):
        """All (i, j) pairs with i < j, in lexicographic order."""
        n = self.n_neutrinos
        return [(i, j) for i in range(1, n + 1) for j in range(i + 1, n + 1)]

    # ------------------------------------------------------------

    @contextmanager
    def cp_conjugated(self, active: bool = True):
        """
        Flip the sign of every Dirac phase for the duration of the block.

        The stored phases are restored on exit, including when the block raises.
        """
        if not active:
            yield self
            return
        saved = dict(self.dirac_phases)
        self.dirac_phases = {k: -v for k, v in saved.items()}
        try:
            yield self
        finally:
            self.dirac_phases = saved

    def build_mixing_matrix(self):
        """
        Return the complex mixing matrix U (dim x dim).

        PDG convention is enforced on the active 3x3 sub-block:
            U_active = R23 * U13(delta) * R12
        for any dim >= 3. All remaining rotations (e.g. with sterile states)
        are then applied in the user-provided insertion order.
        """
        n = self.n_neutrinos
        U = np.eye(n, dtype=np.complex128)

        angles_ordered = list()
        if n >= 3:
            angles_ordered.extend([p for p in [(2, 3), (1, 3), (1, 2)] if p in self.mixing_angles])
        angles_ordered.extend([p for p in self.mixing_angles if p not in angles_ordered])

        # rotations act on mass columns: right-multiply
        for (i, j) in angles_ordered:
            theta = self.mixing_angles[(i, j)]
            delta = self.dirac_phases.get((i, j), 0.0)
            s, c = np.sin(theta), np.cos(theta)

            R = np.eye(n, dtype=np.complex128)
            ii, jj = i - 1, j - 1
            R[ii, ii] = c
            R[jj, jj] = c
            R[ii, jj] = s * np.exp(-1j * delta)
            R[jj, ii] = -s * np.exp(+1j * delta)
            U = U @ R

        return U

    def summary(self):
        print(f"Mixing: {self.n_neutrinos} flavors")
        for (i, j), theta in sorted(self.mixing_angles.items()):
            delta = self.dirac_phases.get((i, j), 0.0)
            print(f"θ{i}{j} = {np.rad2deg(theta):.3f}°, δ{i}{j} = {np.rad2deg(delta):.3f}°")
