"""
Simple climate model core: the Hector simpleNbox carbon cycle and forcing.

Components exchange unit-tagged values through a message hub (`Core`). The
carbon cycle is integrated yearly with `scipy.integrate.solve_ivp`.

Example
-------
>>> from scmcore.config import build_core, load_model_config
>>> with build_core(load_model_config("configs/nbox/defaults.toml")) as core:
...     core.run(2100)
...     core.get_data("Ca", 2100)
"""

from scmcore.capabilities import Capability
from scmcore.carbon import CarbonCycleSolver, SimpleNbox, SimpleOcean
from scmcore.component import Component, Input, Output, Setting
from scmcore.components import PrescribedComponent, make_series
from scmcore.core import Core
from scmcore.exceptions import ModelError
from scmcore.forcing import ForcingComponent
from scmcore.messages import MessageData, MessageType
from scmcore.timeseries import InterpolationStrategy, TimeSeries
from scmcore.units import FluxPool, Unit, UnitVal

__all__ = [
    "CarbonCycleSolver",
    "Capability",
    "Component",
    "Core",
    "FluxPool",
    "ForcingComponent",
    "Input",
    "InterpolationStrategy",
    "MessageData",
    "MessageType",
    "ModelError",
    "Output",
    "PrescribedComponent",
    "Setting",
    "SimpleNbox",
    "SimpleOcean",
    "TimeSeries",
    "Unit",
    "UnitVal",
    "make_series",
]
