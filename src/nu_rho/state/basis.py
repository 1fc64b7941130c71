from enum import Enum


class Basis(Enum):
    MASS = "mass"                   # free-Hamiltonian eigenstates, no frame rotation
    FLAVOR = "flavor"               # weak-interaction eigenstates, only used to describe inputs
    INTERACTION = "interaction"     # frame co-rotating with the vacuum Hamiltonian

    @classmethod
    def working_bases(cls):
        """Bases a propagation can be carried out in."""
        return cls.MASS, cls.INTERACTION
