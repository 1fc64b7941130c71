from enum import Enum, Flag, auto

from nu_rho.errors import PreconditionError


class Ready(Flag):
    NONE = 0
    ENERGY = auto()
    BODY = auto()
    TRACK = auto()
    STATE = auto()
    EVOLVED = auto()


class Stage(Enum):
    UNINITIALIZED = "uninitialized"
    ENERGY_SET = "energy-set"
    MEDIUM_SET = "medium-set"
    STATE_SET = "state-set"
    EVOLVED = "evolved"


# event -> (requires, sets, clears)
TRANSITIONS = {
    "set_energy": (Ready.NONE, Ready.ENERGY, Ready.STATE | Ready.EVOLVED),
    "set_body": (Ready.NONE, Ready.BODY, Ready.NONE),
    "set_track": (Ready.NONE, Ready.TRACK, Ready.NONE),
    "set_mixing": (Ready.NONE, Ready.NONE, Ready.STATE | Ready.EVOLVED),
    "set_basis": (Ready.NONE, Ready.NONE, Ready.STATE | Ready.EVOLVED),
    "set_initial_state": (Ready.ENERGY | Ready.BODY | Ready.TRACK, Ready.STATE, Ready.EVOLVED),
    "evolve": (Ready.ENERGY | Ready.BODY | Ready.TRACK | Ready.STATE, Ready.EVOLVED, Ready.NONE),
    "evaluate": (Ready.ENERGY | Ready.STATE, Ready.NONE, Ready.NONE),
    "hamiltonian": (Ready.ENERGY | Ready.BODY | Ready.TRACK, Ready.NONE, Ready.NONE),
    "write": (Ready.ENERGY | Ready.BODY | Ready.TRACK | Ready.STATE, Ready.NONE, Ready.NONE),
}


class Lifecycle:
    """Readiness of a propagation, with every precondition check in `require`."""

    def __init__(self):
        self.flags = Ready.NONE

    def require(self, event: str):
        requires = TRANSITIONS[event][0]
        missing = requires & ~self.flags
        if missing:
            names = ", ".join(f.name.lower() for f in Ready if f and f in missing)
            raise PreconditionError(f"cannot {event.replace('_', ' ')}: {names} not set")

    def apply(self, event: str):
        self.require(event)
        _, sets, clears = TRANSITIONS[event]
        self.flags = (self.flags & ~clears) | sets

    def has(self, flag: Ready) -> bool:
        return flag in self.flags

    @property
    def stage(self) -> Stage:
        f = self.flags
        if Ready.EVOLVED in f:
            return Stage.EVOLVED
        if Ready.STATE in f:
            return Stage.STATE_SET
        if Ready.ENERGY in f and (Ready.BODY | Ready.TRACK) in f:
            return Stage.MEDIUM_SET
        if Ready.ENERGY in f:
            return Stage.ENERGY_SET
        return Stage.UNINITIALIZED
