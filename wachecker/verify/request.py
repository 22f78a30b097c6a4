"""Batch request construction and input limits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .normalizer import parse_lines


class RequestRejected(Exception):
    """A chat message that cannot become a batch; reported back to the user."""

    reason = "rejected"


class EmptyRequest(RequestRejected):
    reason = "empty"

    def __init__(self) -> None:
        super().__init__("no valid numbers in message")


class TooManyNumbers(RequestRejected):
    reason = "too_many"

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"{count} numbers submitted, limit is {limit}")
        self.count = count
        self.limit = limit


@dataclass
class BatchRequest:
    """Validated identifiers from one inbound message.

    Attributes:
    - identifiers: list[str] - unique identifiers in first-seen order
    - submitted: int - identifiers that passed filtering, duplicates included
    """

    identifiers: List[str]
    submitted: int

    @property
    def total(self) -> int:
        return len(self.identifiers)


def build_request(
    text: str,
    *,
    country_code: str,
    min_digits: int,
    max_numbers: int,
) -> BatchRequest:
    """Parse a chat message into a `BatchRequest`.

    Raises:
    - EmptyRequest: nothing survived filtering
    - TooManyNumbers: more than ``max_numbers`` lines survived filtering; the
      whole message is rejected, never truncated
    """
    numbers = parse_lines(text, country_code=country_code, min_digits=min_digits)
    if not numbers:
        raise EmptyRequest()
    if len(numbers) > max_numbers:
        raise TooManyNumbers(len(numbers), max_numbers)
    unique = list(dict.fromkeys(numbers))
    return BatchRequest(identifiers=unique, submitted=len(numbers))
