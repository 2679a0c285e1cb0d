"""Carbon-cycle components.

- SimpleNbox: multi-biome terrestrial carbon kernel
- SimpleOcean: two-box ocean carbon model
- CarbonCycleSolver: yearly ODE driver for both
"""

from scmcore.carbon.base import CarbonCycleModel
from scmcore.carbon.nbox import SimpleNbox
from scmcore.carbon.ocean import SimpleOcean
from scmcore.carbon.solver import CarbonCycleSolver

__all__ = [
    "CarbonCycleModel",
    "CarbonCycleSolver",
    "SimpleNbox",
    "SimpleOcean",
]
