class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class InsufficientStockError(AppError):
    pass


class BackendError(AppError):
    """Remote backend unreachable or returned an unusable response."""


class PaginationLimitError(AppError):
    pass
