"""
Relevance tokens for block-fill runs

A run is never aborted mid-flight. The orchestrating layer invalidates the
token when the run's result is no longer wanted (area replaced, session
cleared) and checks is_relevant before applying the result.
"""


class RelevanceToken:
    def __init__(self):
        self._relevant = True

    def invalidate(self) -> None:
        self._relevant = False

    @property
    def is_relevant(self) -> bool:
        return self._relevant
