"""Radiative forcing aggregation."""

from scmcore.forcing.component import ForcingComponent, ch4_sarf, co2_sarf, n2o_sarf

__all__ = ["ForcingComponent", "ch4_sarf", "co2_sarf", "n2o_sarf"]
