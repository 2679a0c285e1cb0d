"""Tests for the message hub."""

from __future__ import annotations

import pytest

from scmcore.component import Component, Input, Output, Setting
from scmcore.core import Core
from scmcore.exceptions import (
    ContractViolationError,
    DateConstraintError,
    ModelError,
    UnknownCapabilityError,
)
from scmcore.messages import MessageData, MessageType
from scmcore.units import Unit, UnitVal


class Source(Component):
    component_name = "source"

    level = Output("level", unit=Unit.UNITLESS)
    scale = Setting("scale", unit=Unit.UNITLESS)
    beta = Setting("beta", unit=Unit.UNITLESS)

    def __init__(self, log):
        self.log = log
        self.scale_value = 1.0
        self.settings = {}

    def set_data(self, name, data):
        if name == "scale":
            self.scale_value = data.get_unitval(Unit.UNITLESS).magnitude
        else:
            self.settings[name] = data.get_unitval(Unit.UNITLESS)

    def get_data(self, name, date=None):
        when = self.core.get_current_date() if date is None else date
        return UnitVal(when * self.scale_value, Unit.UNITLESS)

    def run(self, run_to_date):
        self.log.append((self.component_name, run_to_date))


class Sink(Component):
    component_name = "sink"

    level = Input("level", unit=Unit.UNITLESS)
    doubled = Output("doubled", unit=Unit.UNITLESS)

    def __init__(self, log):
        self.log = log
        self.seen = []

    def get_data(self, name, date=None):
        return self.core.get_data("level", date) * 2

    def run(self, run_to_date):
        self.seen.append(self.core.get_data("level", run_to_date).magnitude)
        self.log.append((self.component_name, run_to_date))


class Loop(Component):
    component_name = "loop"

    doubled = Input("doubled")
    level_out = Output("other", unit=Unit.UNITLESS)

    def run(self, run_to_date):
        pass


class Stubborn(Component):
    component_name = "stubborn"

    def run(self, run_to_date):
        pass

    def run_spinup(self, step):
        return False


class TestRegistry:
    """Tests for component and capability registration."""

    def test_duplicate_component_name_raises(self):
        """Two components cannot share a name."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        with pytest.raises(ContractViolationError, match="already attached"):
            core.add_component(Source([]))

    def test_capability_has_single_provider(self):
        """A second provider of a capability is rejected."""

        class OtherSource(Source):
            component_name = "other"

        core = Core(1745, 1750)
        core.add_component(Source([]))
        with pytest.raises(ContractViolationError, match="'level' is provided by 'source'"):
            core.add_component(OtherSource([]))

    def test_check_capability_and_input(self):
        """Capabilities and accepted inputs are queryable."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        assert core.check_capability("level")
        assert not core.check_capability("doubled")
        assert core.check_input("scale")
        assert not core.check_input("level")

    def test_get_component_by_capability(self):
        """The provider of a capability can be looked up."""
        core = Core(1745, 1750)
        source = core.add_component(Source([]))
        assert core.get_component_by_capability("level") is source
        with pytest.raises(UnknownCapabilityError):
            core.get_component_by_capability("nothing")

    def test_end_before_start_raises(self):
        """The run period must be non-empty."""
        with pytest.raises(DateConstraintError):
            Core(2000, 1990)


class TestRunOrder:
    """Tests for dependency resolution."""

    def test_provider_runs_first(self):
        """Components run after the providers of their inputs."""
        log = []
        core = Core(1745, 1750)
        sink = core.add_component(Sink(log))
        core.add_component(Source(log))
        core.run(1747)
        assert log == [
            ("source", 1746.0),
            ("sink", 1746.0),
            ("source", 1747.0),
            ("sink", 1747.0),
        ]
        assert sink.seen == [1746.0, 1747.0]
        assert core.get_current_date() == 1747.0

    def test_missing_required_dependency_raises(self):
        """A required input without provider fails at prepare time."""
        core = Core(1745, 1750)
        core.add_component(Sink([]))
        with pytest.raises(UnknownCapabilityError, match="'level'"):
            core.prepare()

    def test_dependency_cycle_raises(self):
        """Cyclic dependencies are rejected."""

        class Echo(Component):
            component_name = "echo"
            other = Input("other")
            level = Output("level", unit=Unit.UNITLESS)

            def run(self, run_to_date):
                pass

        core = Core(1745, 1750)
        core.add_component(Echo())
        core.add_component(Sink([]))
        core.add_component(Loop())
        with pytest.raises(ContractViolationError, match="cycle"):
            core.prepare()

    def test_cannot_add_after_prepare(self):
        """Components must be attached before the run order is fixed."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        core.prepare()
        with pytest.raises(ContractViolationError):
            core.add_component(Sink([]))


class TestMessages:
    """Tests for message routing."""

    def test_getdata_routes_to_provider(self):
        """GETDATA goes to the provider of the capability."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        core.add_component(Sink([]))
        assert core.get_data("doubled", 1800).magnitude == 3600.0

    def test_setdata_plain_number_adopts_units(self):
        """Numbers sent with set_data take the receiver's unit."""
        core = Core(1745, 1750)
        source = core.add_component(Source([]))
        core.set_data("scale", 2.0)
        assert source.scale_value == 2.0
        assert core.get_data("level", 10).value(Unit.UNITLESS) == 20.0

    def test_setdata_unknown_name_raises(self):
        """SETDATA for a name nobody accepts fails."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        with pytest.raises(UnknownCapabilityError, match="'nonsense'"):
            core.set_data("nonsense", 1.0)

    def test_biome_setting_routes_by_parameter(self):
        """A '<biome>.<name>' setting reaches the component accepting <name>."""
        core = Core(1745, 1750)
        source = core.add_component(Source([]))
        core.set_data("boreal.beta", 0.5)
        assert source.settings["boreal.beta"] == UnitVal(0.5, Unit.UNITLESS)

    def test_unknown_message_type_raises(self):
        """Components reject messages they do not handle."""
        core = Core(1745, 1750)
        source = core.add_component(Source([]))
        with pytest.raises(ContractViolationError, match="unknown message"):
            source.send_message(MessageType.DUMP_TO_DEEP_OCEAN, "level", MessageData())

    def test_set_series_sends_dated_values(self):
        """set_series() sends one dated message per value."""
        received = []

        class Recorder(Source):
            def set_data(self, name, data):
                received.append((name, data.date, data.value))

        core = Core(1745, 1750)
        core.add_component(Recorder([]))
        core.set_series("scale", [1750, 1760], [1.0, 2.0], Unit.UNITLESS)
        assert received == [
            ("scale", 1750.0, UnitVal(1.0, Unit.UNITLESS)),
            ("scale", 1760.0, UnitVal(2.0, Unit.UNITLESS)),
        ]


class TestLifecycle:
    """Tests for running, resetting and shutting down."""

    def test_run_past_end_raises(self):
        """The model cannot run beyond its end date."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        with pytest.raises(DateConstraintError):
            core.run(1751)

    def test_run_backwards_raises(self):
        """The model cannot run to a date before the current one."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        core.run(1748)
        with pytest.raises(DateConstraintError):
            core.run(1747)

    def test_run_defaults_to_end(self):
        """run() without a date runs to the end date."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        core.run()
        assert core.get_current_date() == 1750.0

    def test_reset_moves_current_date(self):
        """reset() rewinds the current date."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        core.run(1750)
        core.reset(1747)
        assert core.get_current_date() == 1747.0

    def test_reset_into_future_raises(self):
        """reset() cannot move past the current date."""
        core = Core(1745, 1750)
        core.add_component(Source([]))
        core.run(1747)
        with pytest.raises(DateConstraintError):
            core.reset(1749)

    def test_spinup_not_converging_raises(self):
        """Spinup fails after the step limit."""
        core = Core(1745, 1750, do_spinup=True, max_spinup_steps=5)
        core.add_component(Stubborn())
        with pytest.raises(ModelError, match="did not converge after 5 steps"):
            core.run()
        assert not core.in_spinup()

    def test_context_manager_shuts_down(self):
        """Leaving the context detaches every component."""
        with Core(1745, 1750) as core:
            source = core.add_component(Source([]))
            core.run(1746)
        assert source.core is None
