class CanonicalizationError(Exception):
    """
    Base exception for all hashing-engine failures.
    """

    pass


class InputShapeError(CanonicalizationError):
    """
    Raised when input does not conform to the Record/Batch/Field contracts.
    """

    pass


class EncodingError(CanonicalizationError):
    """
    Raised when a scalar cannot be represented in the canonical text form.
    """

    pass


class CyclicReferenceError(InputShapeError, EncodingError):
    """
    Raised when a container is reachable from itself.
    """

    pass
