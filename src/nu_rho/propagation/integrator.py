import logging

import numpy as np
from scipy.integrate import solve_ivp

from nu_rho.config import IntegratorSettings
from nu_rho.errors import IntegrationError

logger = logging.getLogger(__name__)


class PathIntegrator:
    """
    Owns the flat complex state buffer and advances it along the path coordinate.

    `pre_derive(x)` is called before every right-hand-side evaluation
    `derive(x, y) -> dy/dx`, both with x in eV^-1.
    """

    def __init__(self, pre_derive, derive, settings: IntegratorSettings = None):
        self._pre_derive = pre_derive
        self._derive = derive
        self.settings = IntegratorSettings() if settings is None else settings
        self._x = 0.0
        self._y = np.zeros(0, dtype=np.complex128)
        self.n_evaluations = 0

    @property
    def position(self) -> float:
        return self._x

    @property
    def state(self) -> np.ndarray:
        """Flat state buffer; modifications are seen by the next `advance`."""
        return self._y

    def reset(self, x0: float, y0):
        self._x = float(x0)
        self._y = np.array(y0, dtype=np.complex128).reshape(-1)

    def _rhs(self, x, y):
        self._pre_derive(x)
        self.n_evaluations += 1
        return self._derive(x, y)

    def advance(self, length: float):
        """Integrate from the current position over `length` [eV^-1]."""
        if length <= 0.0:
            return
        x_end = self._x + length
        solution = solve_ivp(
            self._rhs,
            t_span=(self._x, x_end),
            y0=self._y,
            method=self.settings.method,
            rtol=self.settings.rtol,
            atol=self.settings.atol,
            max_step=self.settings.h_max,
        )
        if not solution.success:
            raise IntegrationError(f"integration from x={self._x:.6e} to x={x_end:.6e} eV^-1 "
                                   f"failed: {solution.message}")
        logger.debug("solve_ivp: %d function evaluations over %.6e eV^-1", solution.nfev, length)
        self._y = np.ascontiguousarray(solution.y[:, -1])
        self._x = x_end
        # leave the callbacks synchronised with the final position
        self._pre_derive(self._x)
