"""Exception hierarchy for nodefleet."""


class FleetError(Exception):
    """Base for all nodefleet errors."""


class ProbeError(FleetError):
    """Host resource facts could not be read or parsed."""


class PolicyViolationError(FleetError):
    """Requested worker count is not acceptable under the active policy."""


class InsufficientResourcesError(PolicyViolationError):
    """Hard-cap planning left no room for a single worker."""


class InvalidIdentityError(FleetError):
    """Worker identity is missing or not numeric."""


class DuplicateIdentityError(FleetError):
    """Worker identity was already collected in this run."""


class SessionManagerError(FleetError):
    """A session manager command failed."""


class SessionNotFoundError(FleetError):
    """No session at the requested ordinal."""


class DependencyMissingError(FleetError):
    """A required external tool is absent and could not be installed."""


class OperatorCancelled(FleetError):
    """Operator declined a confirmation prompt."""
