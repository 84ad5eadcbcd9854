class DictionaryError(Exception):
    """Базовая ошибка сервиса словаря"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DictionaryError):
    status_code = 400


class MalformedFieldError(ValidationError):
    def __init__(self, field: str, reason: str):
        super().__init__(f"Malformed '{field}' field: {reason}")
        self.field = field


class DuplicateKeyError(ValidationError):
    status_code = 409


class CategoryInUseError(ValidationError):
    status_code = 409


class InvalidTransition(ValidationError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change status from {current} to {target}")
        self.current = current
        self.target = target


class NotFoundError(DictionaryError):
    status_code = 404


class MediaIngestError(DictionaryError):
    status_code = 400

    def __init__(self, message: str, kind=None):
        super().__init__(message)
        self.kind = kind
        # True, если старый файл уже удален из хранилища до ошибки загрузки
        self.detached = False


class SizeLimitExceeded(MediaIngestError):
    def __init__(self, kind, actual_size: int, limit: int):
        super().__init__(
            f"{kind.value.capitalize()} size exceeds {limit // 1024}KB limit "
            f"(current: {actual_size / 1024:.2f}KB)",
            kind=kind,
        )
        self.actual_size = actual_size
        self.limit = limit


class UploadFailed(MediaIngestError):
    pass


class BlobCleanupError(DictionaryError):
    """Не удалось удалить файл из хранилища. Только логируется."""

    def __init__(self, public_id: str, reason: str):
        super().__init__(f"Failed to delete blob {public_id}: {reason}")
        self.public_id = public_id


class PersistenceError(DictionaryError):
    status_code = 500
