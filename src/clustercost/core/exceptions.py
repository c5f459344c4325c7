class ClusterCostError(Exception):
    """Base exception for clustercost."""

    pass


class QueryResultError(ClusterCostError):
    """Raised when a query result is missing required labels or has an unusable payload."""

    pass


class ConfigError(ClusterCostError):
    """Raised when the configuration contains invalid values."""

    pass
