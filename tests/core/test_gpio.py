import itertools

import pytest

from configurator.core.exceptions import ValidationError
from configurator.core.gpio import (
    PinConfiguration,
    PortAggregator,
    PortMasks,
    parse_pin_name,
    pin_masks,
)
from configurator.interfaces.gpio_enums import PinDirection, PinLevel, PinMode


def output(name, level=PinLevel.LOW, **kwargs):
    return PinConfiguration(name, direction=PinDirection.OUTPUT, initial_level=level, **kwargs)


def input_pin(name, **kwargs):
    return PinConfiguration(name, direction=PinDirection.INPUT, **kwargs)


class TestPinNames:
    @pytest.mark.parametrize("name, expected", [("RA0", ("A", 0)), ("RK15", ("K", 15))])
    def test_parse(self, name, expected):
        assert parse_pin_name(name) == expected

    @pytest.mark.parametrize("name", ["RA16", "RL1", "PA0", "RB", "rb3", "RB-1", "RB01", "RA00"])
    def test_parse_invalid(self, name):
        with pytest.raises(ValidationError):
            parse_pin_name(name)

    def test_properties(self):
        pin = PinConfiguration("RB8")

        assert pin.port == "B"
        assert pin.bit == 8
        assert pin.bit_mask == 0x0100
        assert pin.rp_name == "RPB8"


class TestPinConfiguration:
    def test_defaults(self):
        pin = PinConfiguration("RC2")

        assert pin.mode == PinMode.GPIO
        assert pin.direction == PinDirection.INPUT
        assert pin.initial_level == PinLevel.LOW

    def test_exclusive_pulls(self):
        with pytest.raises(ValidationError, match="exclusive"):
            input_pin("RC2", pull_up=True, pull_down=True)

    def test_peripheral_needs_signal(self):
        with pytest.raises(ValidationError):
            PinConfiguration("RD2", mode=PinMode.PERIPHERAL)

    def test_bad_name(self):
        with pytest.raises(ValidationError):
            PinConfiguration("RZ1")


class TestPinMasks:
    def test_output_high(self):
        masks = pin_masks(output("RB3", PinLevel.HIGH, open_drain=True))

        assert masks == PortMasks(
            analog_disable=0x8, direction_set_output=0x8, latch_set=0x8, open_drain=0x8
        )

    def test_output_low(self):
        masks = pin_masks(output("RB3"))

        assert masks.latch_clear == 0x8
        assert masks.latch_set == 0

    def test_input_with_pull_up(self):
        masks = pin_masks(input_pin("RB4", pull_up=True))

        assert masks == PortMasks(analog_disable=0x10, direction_set_input=0x10, pull_up=0x10)

    def test_analog(self):
        masks = pin_masks(PinConfiguration("RB5", mode=PinMode.ANALOG))

        assert masks == PortMasks(direction_set_input=0x20, analog_enable=0x20)

    def test_peripheral_contributes_nothing(self):
        masks = pin_masks(PinConfiguration("RD2", mode=PinMode.PERIPHERAL, peripheral_signal="U1RX"))

        assert masks.is_empty()


class TestPortMasks:
    def test_union(self):
        a = PortMasks(latch_set=0x1, pull_up=0x4)
        b = PortMasks(latch_set=0x2, open_drain=0x8)

        assert a | b == PortMasks(latch_set=0x3, pull_up=0x4, open_drain=0x8)

    def test_union_with_other_type(self):
        with pytest.raises(TypeError):
            PortMasks() | 1

    def test_register_writes_order_and_zero_omission(self):
        masks = PortMasks(
            analog_disable=0x3,
            direction_set_output=0x1,
            direction_set_input=0x2,
            latch_set=0x1,
            pull_up=0x2,
        )

        assert masks.register_writes("B") == [
            ("ANSELBCLR", 0x3),
            ("LATBSET", 0x1),
            ("TRISBCLR", 0x1),
            ("TRISBSET", 0x2),
            ("CNPUBSET", 0x2),
        ]


class TestPortAggregator:
    @pytest.fixture
    def aggregator(self, family):
        return family.ports

    def test_groups_by_port(self, aggregator):
        pins = [output("RB0", PinLevel.HIGH), output("RB1"), input_pin("RC1", pull_down=True)]

        result = aggregator.aggregate(pins)

        assert list(result) == ["B", "C"]
        assert result["B"].direction_set_output == 0x3
        assert result["B"].latch_set == 0x1
        assert result["B"].latch_clear == 0x2
        assert result["C"] == PortMasks(analog_disable=0x2, direction_set_input=0x2, pull_down=0x2)

    def test_order_does_not_matter(self, aggregator):
        pins = [
            output("RA0", PinLevel.HIGH),
            output("RA1"),
            input_pin("RA2", pull_up=True),
            PinConfiguration("RA3", mode=PinMode.ANALOG),
            output("RD4", open_drain=True),
        ]
        expected = aggregator.aggregate(pins)

        for permutation in itertools.permutations(pins):
            assert aggregator.aggregate(permutation) == expected

    def test_aggregate_is_union_of_single_pins(self, aggregator):
        pins = [output("RE0", PinLevel.HIGH), input_pin("RE1", pull_up=True), output("RE2")]

        merged = aggregator.aggregate(pins)["E"]

        union = PortMasks()
        for pin in pins:
            union = union | aggregator.aggregate([pin])["E"]
        assert merged == union

    def test_peripheral_only_port_left_out(self, aggregator):
        pins = [PinConfiguration("RD2", mode=PinMode.PERIPHERAL, peripheral_signal="U1RX")]

        assert aggregator.aggregate(pins) == {}

    def test_identical_duplicate_accepted(self, aggregator):
        pins = [output("RB0"), output("RB0")]

        assert aggregator.aggregate(pins)["B"].direction_set_output == 0x1

    def test_conflicting_duplicate_rejected(self, aggregator):
        with pytest.raises(ValidationError, match="configured twice"):
            aggregator.aggregate([output("RB0"), input_pin("RB0")])

    def test_missing_pin_rejected(self, aggregator):
        # PORTA has no bit 8
        with pytest.raises(ValidationError, match="does not exist"):
            aggregator.aggregate([output("RA8")])

    def test_without_port_table(self):
        aggregator = PortAggregator()

        assert aggregator.has_pin("RA8")
        assert aggregator.aggregate([output("RA8")])["A"].direction_set_output == 0x100

    def test_register_writes(self, aggregator):
        pins = [output("RB2", PinLevel.HIGH), PinConfiguration("RA0", mode=PinMode.ANALOG)]

        assert aggregator.register_writes(pins) == [
            ("TRISASET", 0x1),
            ("ANSELASET", 0x1),
            ("ANSELBCLR", 0x4),
            ("LATBSET", 0x4),
            ("TRISBCLR", 0x4),
        ]

    def test_zero_padded_alias_of_a_pin_rejected(self, aggregator):
        with pytest.raises(ValidationError):
            aggregator.aggregate([output("RB1"), input_pin("RB01")])

    def test_validate_orders_by_port_and_bit(self, aggregator):
        pins = [output("RB10"), output("RB2"), output("RA1")]

        assert [pin.pin_name for pin in aggregator.validate(pins)] == ["RA1", "RB2", "RB10"]
