import pytest

from field_fuzzers.strategy import FuzzingStrategy, StrategyKind


def test_blank_marker_replaces_with_inner_fragment() -> None:
    assert FuzzingStrategy.from_value("", "X").process("anything") == "X"


@pytest.mark.parametrize("marker", ["   ", "\t", " \t "])
def test_whitespace_only_marker_replaces_with_inner_fragment(marker: str) -> None:
    assert FuzzingStrategy.from_value(marker, "X").kind is StrategyKind.REPLACE
    assert FuzzingStrategy.from_value(marker, "X").process("val") == "X"


def test_left_padded_marker_prefixes() -> None:
    assert FuzzingStrategy.from_value(" pad", "X").process("val") == "Xval"
    assert FuzzingStrategy.from_value("\tpad", "X").kind is StrategyKind.PREFIX


def test_right_padded_marker_trails() -> None:
    assert FuzzingStrategy.from_value("pad ", "X").process("val") == "valX"


def test_other_markers_are_sent_as_is() -> None:
    assert FuzzingStrategy.from_value("abc", "X").process("val") == "abc"


def test_merge_fuzzing_classifies_and_processes() -> None:
    assert FuzzingStrategy.merge_fuzzing(" pad", "val", "X") == "Xval"
    assert FuzzingStrategy.merge_fuzzing(None, "val", "X") == "X"
    assert FuzzingStrategy.merge_fuzzing("\t", "val", "X") == "X"


@pytest.mark.parametrize(
    ("strategy", "expected"),
    [
        (FuzzingStrategy.replace().with_data("new"), "new"),
        (FuzzingStrategy.noop().with_data("new"), "new"),
        (FuzzingStrategy.prefix().with_data("  "), "  old"),
        (FuzzingStrategy.trail().with_data("  "), "old  "),
        (FuzzingStrategy.skip(), "old"),
    ],
)
def test_process(strategy: FuzzingStrategy, expected: str) -> None:
    assert strategy.process("old") == expected


def test_non_string_values_are_rendered_as_json() -> None:
    assert FuzzingStrategy.prefix().with_data(" ").process(12) == " 12"
    assert FuzzingStrategy.trail().with_data("x").process(True) == "truex"


def test_skip_is_flagged() -> None:
    assert FuzzingStrategy.skip().is_skip()
    assert not FuzzingStrategy.replace().is_skip()


def test_with_data_returns_new_strategy() -> None:
    base = FuzzingStrategy.replace()
    derived = base.with_data("value")

    assert base.data is None
    assert derived.data == "value"
    assert derived.kind is StrategyKind.REPLACE


def test_rendering() -> None:
    long_value = "a" * 40
    strategy = FuzzingStrategy.replace().with_data(long_value)

    assert strategy.truncated_value() == "a" * 30 + "..."
    assert strategy.truncated() == f"REPLACE with {'a' * 30}..."
    assert str(strategy) == f"REPLACE with {long_value}"
    assert str(FuzzingStrategy.skip()) == "SKIP"
    assert FuzzingStrategy.prefix().with_data("short").truncated_value() == "short"
