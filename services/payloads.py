import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from services.errors import MalformedFieldError, ValidationError

FLAT_DIALECT = "standard"


class Meaning(BaseModel):
    language: str = Field(min_length=1)  # english, urdu, roman ...
    value: str = Field(min_length=1)


class DialectEntry(BaseModel):
    word: str = Field(min_length=1)
    dialect: str = Field(min_length=1)  # Yousafzai, Kandahari ...
    meanings: List[Meaning] = Field(min_length=1)
    audio: Optional[str] = None
    description: Optional[str] = None


class Translation(BaseModel):
    english: Optional[str] = None
    urdu: Optional[str] = None
    roman: Optional[str] = None


_dialect_list = TypeAdapter(List[DialectEntry])


def decode_json_field(name: str, raw) -> Any:
    """Поля из FormData приходят строкой JSON"""
    if raw is None or not isinstance(raw, (str, bytes)):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedFieldError(name, str(exc)) from exc


def parse_translation(raw) -> Optional[Dict[str, Optional[str]]]:
    data = decode_json_field("translation", raw)
    if data is None or data == "":
        return None
    try:
        return Translation.model_validate(data).model_dump()
    except PydanticValidationError as exc:
        raise MalformedFieldError("translation", _first_error(exc)) from exc


def parse_dialect_entries(raw) -> List[dict]:
    """
    Разбирает массив диалектов. Возвращает словари, у которых ключ ``audio``
    есть только если клиент его прислал.
    """
    data = decode_json_field("words", raw)
    if not isinstance(data, list):
        raise MalformedFieldError("words", "expected a JSON array of dialect entries")
    if not data:
        raise ValidationError("At least one dialect entry is required")
    try:
        entries = _dialect_list.validate_python(data)
    except PydanticValidationError as exc:
        raise MalformedFieldError("words", _first_error(exc)) from exc

    result = []
    for entry in entries:
        data = entry.model_dump()
        if "audio" not in entry.model_fields_set:
            del data["audio"]
        result.append(data)
    return result


def flat_to_dialect_entries(word: str, translation: Optional[dict], description: Optional[str] = None) -> List[dict]:
    """Плоская форма слова - вырожденный случай с одним диалектом"""
    meanings = [
        {"language": language, "value": value}
        for language, value in (translation or {}).items()
        if value
    ]
    return parse_dialect_entries(
        [
            {
                "word": word,
                "dialect": FLAT_DIALECT,
                "meanings": meanings,
                "description": description,
            }
        ]
    )


def _first_error(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else error.get("msg", "invalid value")
