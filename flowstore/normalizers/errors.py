# flowstore/normalizers/errors.py


class NormalizationError(ValueError):
    """A raw record could not be turned into a canonical record."""


class MalformedTimestamp(NormalizationError):
    pass


class MalformedHexAddress(NormalizationError):
    pass


class TableSpecError(ValueError):
    """The embedded protocol/ethertype table text is broken."""
