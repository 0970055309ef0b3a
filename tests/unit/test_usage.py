from __future__ import annotations

import threading

import pytest

from sheetextract.typing.models import TokenUsage
from sheetextract.usage import UsageAccumulator


def test_token_usage_addition() -> None:
    total = TokenUsage(prompt_tokens=1, completion_tokens=2, total_tokens=3) + TokenUsage(
        prompt_tokens=10,
        completion_tokens=20,
        total_tokens=30,
    )
    assert total == TokenUsage(prompt_tokens=11, completion_tokens=22, total_tokens=33)


def test_token_usage_rejects_other_types() -> None:
    with pytest.raises(NotImplementedError):
        TokenUsage() + 3  # type: ignore[operator]


def test_token_usage_from_api() -> None:
    assert TokenUsage.from_api(None) == TokenUsage()
    assert TokenUsage.from_api({"prompt_tokens": 5, "completion_tokens": None}) == TokenUsage(prompt_tokens=5)

    class _Usage:
        prompt_tokens = 7
        completion_tokens = 3
        total_tokens = 10

    assert TokenUsage.from_api(_Usage()) == TokenUsage(prompt_tokens=7, completion_tokens=3, total_tokens=10)


def test_accumulator_sums_across_threads() -> None:
    accumulator = UsageAccumulator()
    one = TokenUsage(prompt_tokens=1, completion_tokens=1, total_tokens=2)

    def _add_many() -> None:
        for _ in range(100):
            accumulator.add(one)

    threads = [threading.Thread(target=_add_many) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    accumulator.add(None)

    assert accumulator.total == TokenUsage(prompt_tokens=400, completion_tokens=400, total_tokens=800)
