from enum import Enum

electron = 0
muon = 1
tau = 2

ACTIVE_FLAVORS = (electron, muon, tau)

# generalized vectors are only defined up to this dimension
MAX_FLAVORS = 6


class NeutrinoType(Enum):
    NEUTRINO = 1
    ANTINEUTRINO = 2
    BOTH = 3

    @property
    def n_rhos(self) -> int:
        return 2 if self is NeutrinoType.BOTH else 1

    def is_antineutrino_channel(self, channel: int) -> bool:
        """Return True if density-matrix channel `channel` holds antineutrinos."""
        if channel < 0 or channel >= self.n_rhos:
            raise IndexError(f"channel {channel} not available for {self.name} "
                             f"(expected 0..{self.n_rhos - 1})")
        if self is NeutrinoType.BOTH:
            return channel == 1
        return self is NeutrinoType.ANTINEUTRINO

    def channel_types(self) -> list:
        """Particle type held by each channel, in channel order."""
        if self is NeutrinoType.BOTH:
            return [NeutrinoType.NEUTRINO, NeutrinoType.ANTINEUTRINO]
        return [self]
