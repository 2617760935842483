class NotFoundError(Exception):
    """No row matched the id + owner scope of a point lookup."""

    message = "data not found"


class AssetNotFound(NotFoundError):
    pass


class CategoryNotFound(NotFoundError):
    message = "category not found"


class StorageError(Exception):
    """Query build, execution, lock or commit failure.

    Carries the operation name for logs; the cause never reaches the client.
    """

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause


MSG_SUCCESS = "success"
ERR_SERVER = "internal server error"
ERR_VALIDATION = "validation error"
ERR_NOT_AUTHORIZED = "not authorized"
