from sqlalchemy import Column, Integer, String, Text, JSON

from models import Base, build_search_text


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    word = Column(String(100), nullable=False, unique=True)
    translation = Column(JSON, nullable=True)  # { english, urdu, roman }

    image = Column(Text, nullable=True)  # secure_url из хранилища
    audio = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    search_text = Column(Text, nullable=False, default="")

    def media_refs(self):
        """Все ссылки на медиа, которыми владеет категория"""
        refs = []
        if self.image:
            refs.append((self.image, "image"))
        if self.audio:
            refs.append((self.audio, "audio"))
        return refs

    def refresh_search_text(self) -> None:
        translation = self.translation or {}
        self.search_text = build_search_text(self.word, *translation.values())
