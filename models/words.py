import enum

from sqlalchemy import Column, Integer, String, Text, JSON, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship

from models import Base, build_search_text


class WordStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    HIDDEN = "Hidden"


class Word(Base):
    __tablename__ = "words"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    uploaded_by = Column(String(64), nullable=True)

    image = Column(Text, nullable=True)
    # [{ word, dialect, meanings: [{ language, value }], audio, description }]
    words = Column(JSON, nullable=False, default=lambda: [])
    status = Column(String(16), nullable=False, default=WordStatus.PENDING.value, index=True)

    search_text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("Category", lazy="selectin")

    def media_refs(self):
        """Картинка слова и аудио каждого диалекта"""
        refs = []
        if self.image:
            refs.append((self.image, "image"))
        for entry in self.words or []:
            if entry.get("audio"):
                refs.append((entry["audio"], "audio"))
        return refs

    def refresh_search_text(self) -> None:
        parts = []
        for entry in self.words or []:
            parts.append(entry.get("word"))
            parts.extend(m.get("value") for m in entry.get("meanings") or [])
        self.search_text = build_search_text(*parts)
