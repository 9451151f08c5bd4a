"""Error taxonomy for the bracket simulator."""


class SwissError(Exception):
    """Base class for every fatal simulation error."""


class ConfigurationError(SwissError, ValueError):
    """Roster, ruleset or round table does not fit together.

    Raised for wrong roster sizes, duplicate names or seeds, invalid
    series lengths and rounds outside the cohort table. Aborts the run.
    """


class PairingError(SwissError):
    """The pairing policy could not produce a legal round."""
