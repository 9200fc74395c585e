"""vocabflow: guided video vocabulary study with SM-2 spaced repetition."""

from vocabflow.consts import VERSION

__version__ = VERSION
