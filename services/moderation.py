from models.words import WordStatus
from services.errors import InvalidTransition, ValidationError

INITIAL_STATUS = WordStatus.PENDING

# В Pending вернуться нельзя: скрытое слово открывает только approve или move
TRANSITIONS = {
    WordStatus.PENDING: {WordStatus.APPROVED, WordStatus.HIDDEN},
    WordStatus.APPROVED: {WordStatus.APPROVED, WordStatus.HIDDEN},
    WordStatus.HIDDEN: {WordStatus.APPROVED, WordStatus.HIDDEN},
}


def parse_status(value) -> WordStatus:
    try:
        return WordStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in WordStatus)
        raise ValidationError(f"Unknown status {value!r}, expected one of: {allowed}")


def transition(current, target) -> WordStatus:
    current = parse_status(current)
    target = parse_status(target)
    # Повторная установка того же статуса ничего не меняет
    if target is current:
        return target
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)
    return target


def approve(current) -> WordStatus:
    return transition(current, WordStatus.APPROVED)


def hide(current) -> WordStatus:
    return transition(current, WordStatus.HIDDEN)


def move(current, new_category_id: int) -> tuple:
    """Перенос в другую категорию всегда одобряет слово"""
    parse_status(current)
    return new_category_id, WordStatus.APPROVED

