import os

from hypothesis import HealthCheck, settings

from dockast.dockast_position import Range

# Subprocess coverage for CLI runs started with COVERAGE_PROCESS_START
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

settings.register_profile(
    "ci", max_examples=300, suppress_health_check=[HealthCheck.too_slow]
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


def assert_range(
    range_: Range | None,
    start_line: int,
    start_character: int,
    end_line: int,
    end_character: int,
) -> None:
    assert range_ is not None
    actual = (
        range_.start.line,
        range_.start.character,
        range_.end.line,
        range_.end.character,
    )
    assert actual == (start_line, start_character, end_line, end_character)
