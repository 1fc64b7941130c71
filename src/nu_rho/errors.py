class NuRhoError(Exception):
    """Base class for errors raised by nu_rho."""


class PreconditionError(NuRhoError, RuntimeError):
    """A required setup step is missing, or the call is not valid in the current mode."""


class IntegrationError(NuRhoError, RuntimeError):
    """The path integrator could not advance the state."""


class StateFormatError(NuRhoError, ValueError):
    """A persisted state cannot be read by this version."""
