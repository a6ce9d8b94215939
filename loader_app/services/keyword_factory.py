"""
Factory for keyword generation strategies.
Uses caching to avoid creating multiple instances.
"""

from enum import Enum
from loader_app.services.keyword_strategies import (
    KeywordStrategy,
    RandomKeywordStrategy,
    SequentialKeywordStrategy,
)
from loader_app.config import settings


class KeywordStrategyType(Enum):
    """Available keyword generation strategies"""
    SEQUENTIAL = "sequential"
    RANDOM = "random"


class KeywordFactory:
    """Factory for keyword generation strategies with caching"""

    _instances = {}

    @classmethod
    def create_strategy(cls, strategy_type: KeywordStrategyType = None) -> KeywordStrategy:
        """
        Create or return a cached keyword strategy.

        Args:
            strategy_type: Type of strategy to create.
                           If None, uses value from settings.

        Raises:
            ValueError: If strategy_type is unknown
        """
        if strategy_type is None:
            strategy_type = KeywordStrategyType(settings.keyword_strategy)

        if strategy_type in cls._instances:
            return cls._instances[strategy_type]

        if strategy_type == KeywordStrategyType.SEQUENTIAL:
            instance = SequentialKeywordStrategy(charset=settings.shorturl_charset)
        elif strategy_type == KeywordStrategyType.RANDOM:
            instance = RandomKeywordStrategy(
                charset=settings.shorturl_charset,
                length=settings.random_keyword_length,
                max_retries=settings.max_retries,
            )
        else:
            raise ValueError(f"Unknown strategy type: {strategy_type}")

        cls._instances[strategy_type] = instance
        return instance

    @classmethod
    def clear_instances(cls):
        """Forget cached strategies (for testing)"""
        cls._instances.clear()
