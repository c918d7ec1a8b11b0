# src/taskboard/base/exceptions.py

class ObjectNotFoundException(Exception):
    """Exception raised when an object with the specified identifier does not exist."""

    def __init__(self, message: str = "The requested object was not found."):
        super().__init__(message)


class KeyAlreadyExistsException(Exception):
    """Exception raised when trying to insert an entity that would violate a unique constraint."""

    def __init__(self, message: str = "An object with the same key already exists."):
        super().__init__(message)


class RepositoryException(Exception):
    """Exception raised when the underlying store fails during an operation."""

    def __init__(self, message: str = "The storage operation failed."):
        super().__init__(message)


class InvalidCriteriaException(ValueError):
    """Raised when query criteria (paging, dates, sort order) are malformed."""

    def __init__(self, message: str = "Invalid query criteria."):
        super().__init__(message)
