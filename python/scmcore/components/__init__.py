"""Exogenous data providers."""

from scmcore.components.prescribed import PrescribedComponent, make_series

__all__ = ["PrescribedComponent", "make_series"]
