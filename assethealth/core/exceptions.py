"""Error taxonomy for the asset health engine.

Per-asset errors (NotFoundError, DatastoreError) are turned into failure
outcomes by the batch run. RosterFetchError is the only error that aborts a
run. AlertDispatchError is recorded against a single tenant.
"""


class AssetHealthError(Exception):
    """Base class for all engine errors."""


class NotFoundError(AssetHealthError):
    pass


class AssetNotFoundError(NotFoundError):
    def __init__(self, asset_id: str):
        super().__init__("Asset not found")
        self.asset_id = asset_id


class DatastoreError(AssetHealthError):
    """A datastore read or write failed."""


class RosterFetchError(AssetHealthError):
    """The active-asset roster could not be fetched."""


class AlertDispatchError(AssetHealthError):
    """Recipient lookup or alert delivery failed for one tenant."""

    def __init__(self, tenant_id: str, message: str):
        super().__init__(message)
        self.tenant_id = tenant_id


class CalculationCancelledError(AssetHealthError):
    """The calculation was abandoned (timed out) before its score was written."""

    def __init__(self, asset_id: str):
        super().__init__("Calculation cancelled before write")
        self.asset_id = asset_id
