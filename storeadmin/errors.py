# storeadmin/errors.py

"""
Everything the service raises on purpose derives from StoreAdminError.
Routes translate these into HTTP errors, views into a static message.
"""


class StoreAdminError(Exception):
    """Base class for expected, user-visible failures"""


class GatewayError(StoreAdminError):
    """A call to the table storage failed"""


class RowNotFound(GatewayError):
    def __init__(self, table: str, row_id):
        super().__init__(f"{table} row {row_id} not found")
        self.table = table
        self.row_id = row_id


class StorageError(StoreAdminError):
    """A call to the object storage bucket failed"""


class UploadFailed(StorageError):
    pass


class NotAuthenticated(StoreAdminError):
    def __init__(self, message: str = "Please log in"):
        super().__init__(message)
