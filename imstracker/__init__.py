"""imstracker - Isomer tracking for drift-tube ion mobility mass spectrometry.

Associates peaks observed across the voltage groups of a direct-injection
IMS-MS acquisition into isomer tracks, fits each track's drift-time line
and derives mobility and collision cross section.

Numeric kernels (line fitting, robust weighting, Gray code stepping) are
Numba-compiled.
"""

__version__ = "0.1.0"

# Import main submodules for convenient access
from imstracker import constants
from imstracker import physics
from imstracker import stats
from imstracker import scoring
from imstracker import domain
from imstracker import association

__all__ = [
    "constants",
    "physics",
    "stats",
    "scoring",
    "domain",
    "association",
]
