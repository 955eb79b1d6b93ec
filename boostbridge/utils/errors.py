# boostbridge/utils/errors.py
class UserInputError(RuntimeError):
    """
    Raised for invalid user-provided config (hyperparameters, columns, etc).
    Should NOT print traceback.
    """


class UnsupportedConfigurationError(UserInputError):
    """
    The configuration cannot be expressed as backend parameters,
    e.g. a distribution family with no backend objective.
    Raised before any backend call.
    """


class ContractViolation(AssertionError):
    """
    A caller broke an invariant of the scoring path
    (non-uniform observation weights, impossible cardinality, shape mismatch).
    Not recoverable.
    """


class UnseenCategoryWarning(UserWarning):
    """
    Scoring-time categorical level that was absent from training.
    Logged, never raised: the level is encoded with the unseen-level sentinel.
    """


class MissingEncodingDescriptor(KeyError):
    """
    No categorical encoding descriptor is stored under the requested key.
    """


class HandleReleasedError(RuntimeError):
    """
    A lease was requested on a trained-model handle that has been released.
    """


class ScoringAborted(RuntimeError):
    """
    The owning job asked to stop; raised between partitions, never mid-row.
    """
