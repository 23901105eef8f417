"""Target descriptor for cross section calculation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ImsTarget:
    """The ion being tracked.

    Attributes:
        mass_with_adduct: Mass of the ion including its ionization adduct (Da)
        charge_state: Charge state z (> 0)
        descriptor: Free-text label used in reports
    """

    mass_with_adduct: float
    charge_state: int = 1
    descriptor: str = ""

    def __post_init__(self):
        if self.mass_with_adduct <= 0:
            raise ValueError(f"mass_with_adduct must be positive, got {self.mass_with_adduct}")
        if self.charge_state < 1:
            raise ValueError(f"charge_state must be >= 1, got {self.charge_state}")

    @classmethod
    def from_mz(cls, target_mz: float, charge_state: int = 1, descriptor: str = "") -> 'ImsTarget':
        """Build a target from an observed m/z."""
        return cls(target_mz * charge_state, charge_state, descriptor)

    @property
    def target_mz(self) -> float:
        return self.mass_with_adduct / self.charge_state
