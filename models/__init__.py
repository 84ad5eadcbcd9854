from sqlalchemy.orm import declarative_base

Base = declarative_base()


def build_search_text(*parts) -> str:
    """Склеивает текстовые поля в одну строку для поиска без учета регистра"""
    return "\n".join(str(p).strip() for p in parts if p).lower()


from models.categories import Category  # noqa: E402
from models.words import Word, WordStatus  # noqa: E402

__all__ = ["Base", "Category", "Word", "WordStatus", "build_search_text"]
