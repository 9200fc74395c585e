"""Domain errors raised on caller contract violations."""


class VocabflowError(Exception):
    """Base class for all vocabflow errors."""


class InvalidQualityError(VocabflowError, ValueError):
    """A review quality rating outside the 0-5 scale."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Quality must be an integer 0-5, got {quality!r}")


class InvalidAnswerError(VocabflowError, ValueError):
    """An answer letter outside the A-D choices."""

    def __init__(self, answer: object):
        self.answer = answer
        super().__init__(f"Answer must be one of A, B, C, D, got {answer!r}")
