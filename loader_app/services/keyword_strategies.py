"""
Keyword generation strategies for new short URLs.
Uses Strategy Pattern to allow different generation algorithms.
"""

import random
from abc import ABC, abstractmethod
from typing import Callable

from sqlalchemy.orm import Session

from loader_app.exceptions import KeywordGenerationError
from loader_app.models.option import Option


def int2string(number: int, charset: str) -> str:
    """
    Convert a non-negative integer to a string in the given charset.

    With the base 36 charset 0 -> "0", 35 -> "z", 36 -> "10".
    """
    if number < 0:
        raise ValueError("Cannot convert negative integers")
    base = len(charset)
    if number == 0:
        return charset[0]

    result = ""
    while number > 0:
        result = charset[number % base] + result
        number //= base
    return result


class KeywordStrategy(ABC):
    """Abstract base class for keyword generation strategies"""

    @abstractmethod
    def generate(self, db_session: Session, is_free: Callable[[str], bool]) -> str:
        """
        Generate a keyword.

        Args:
            db_session: Database session, for strategies that keep state
            is_free: Predicate telling whether a keyword is neither
                     reserved nor taken

        Returns:
            A free keyword
        """
        pass


class SequentialKeywordStrategy(KeywordStrategy):
    """
    Counter-based keywords: 1, 2, ... z, 10, 11 ...

    The counter lives in the `next_id` option so it survives restarts.
    Reserved and taken keywords are skipped, the counter always moves past
    the keyword it hands out.
    """

    OPTION_NAME = "next_id"

    def __init__(self, charset: str, max_skips: int = 1000):
        self.charset = charset
        self.max_skips = max_skips

    def generate(self, db_session: Session, is_free: Callable[[str], bool]) -> str:
        option = db_session.query(Option).filter(Option.option_name == self.OPTION_NAME).first()
        if option is None:
            option = Option(option_name=self.OPTION_NAME, option_value="1")
            db_session.add(option)

        next_id = int(option.option_value or 1)
        for _ in range(self.max_skips):
            keyword = int2string(next_id, self.charset)
            next_id += 1
            if is_free(keyword):
                option.option_value = str(next_id)
                db_session.flush()
                return keyword

        raise KeywordGenerationError(
            f"Could not find a free keyword after skipping {self.max_skips} candidates"
        )


class RandomKeywordStrategy(KeywordStrategy):
    """
    Random keywords of a fixed length.

    Pros: Unpredictable
    Cons: Collision risk grows with the number of links
    """

    def __init__(self, charset: str, length: int = 5, max_retries: int = 10):
        self.charset = charset
        self.length = length
        self.max_retries = max_retries

    def generate(self, db_session: Session, is_free: Callable[[str], bool]) -> str:
        for _ in range(self.max_retries):
            keyword = "".join(random.choice(self.charset) for _ in range(self.length))
            if is_free(keyword):
                return keyword

        raise KeywordGenerationError(
            f"Could not generate a free keyword after {self.max_retries} attempts"
        )
