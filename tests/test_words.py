"""Tests for the word repository facade and moderation flow."""

import json

import pytest
import pytest_asyncio

from models import WordStatus
from services.blob_codec import MediaKind, resolve_public_id
from services.categories import CategoryService
from services.errors import (
    InvalidTransition,
    MalformedFieldError,
    NotFoundError,
    UploadFailed,
    ValidationError,
)
from services.uploads import MediaUploads, UploadSlot
from services.words import WordService, referenced_public_ids


def entry(word, dialect, english, **extra):
    data = {"word": word, "dialect": dialect, "meanings": [{"language": "english", "value": english}]}
    data.update(extra)
    return data


DIALECTS = [
    entry("Sabaa", "Yousafzai", "Tomorrow"),
    entry("Saba", "Kandahari", "Tomorrow"),
    entry("Sahar", "Wardak", "Morning"),
]


def dialect_audio(**files) -> MediaUploads:
    """audio_0=path -> аудио диалекта 0"""
    media = MediaUploads()
    for name, path in files.items():
        kind, index = name.split("_")
        media.add(UploadSlot(int(index), MediaKind(kind)), path)
    return media


@pytest.fixture
def service(session, assets) -> WordService:
    return WordService(session, assets)


@pytest_asyncio.fixture
async def category(session, assets):
    return await CategoryService(session, assets).create("Time")


@pytest_asyncio.fixture
async def other_category(session, assets):
    return await CategoryService(session, assets).create("Weather")


class TestCreate:
    @pytest.mark.asyncio
    async def test_new_word_is_pending(self, service, category):
        word = await service.create(category.id, words=json.dumps(DIALECTS), uploaded_by="user42")

        assert word.status == WordStatus.PENDING.value
        assert word.category.word == "Time"
        assert [e["dialect"] for e in word.words] == ["Yousafzai", "Kandahari", "Wardak"]
        assert all(e["audio"] is None for e in word.words)

    @pytest.mark.asyncio
    async def test_flat_form_becomes_single_dialect(self, service, category, make_file):
        audio = make_file(100, ".webm")
        media = MediaUploads()
        media.add(UploadSlot(None, MediaKind.AUDIO), audio)

        word = await service.create(
            str(category.id),
            word="Sabaa",
            translation=json.dumps({"english": "Tomorrow", "roman": "Sabaa"}),
            media=media,
        )

        assert len(word.words) == 1
        assert word.words[0]["dialect"] == "standard"
        assert {m["language"] for m in word.words[0]["meanings"]} == {"english", "roman"}
        assert word.words[0]["audio"].endswith(".mp3")

    @pytest.mark.asyncio
    async def test_client_audio_urls_are_ignored(self, service, category):
        words = [entry("Sabaa", "Yousafzai", "Tomorrow", audio="https://evil.example/upload/x.mp3")]

        word = await service.create(category.id, words=words)

        assert word.words[0]["audio"] is None

    @pytest.mark.asyncio
    async def test_category_is_required(self, service):
        with pytest.raises(ValidationError):
            await service.create(None, words=json.dumps(DIALECTS))

    @pytest.mark.asyncio
    async def test_unknown_category(self, service):
        with pytest.raises(NotFoundError):
            await service.create(999, words=json.dumps(DIALECTS))

    @pytest.mark.asyncio
    async def test_entry_without_meanings(self, service, category):
        words = [{"word": "Sabaa", "dialect": "Yousafzai", "meanings": []}]

        with pytest.raises(MalformedFieldError):
            await service.create(category.id, words=json.dumps(words))

    @pytest.mark.asyncio
    async def test_audio_for_missing_dialect(self, service, category, blob_store, make_file):
        with pytest.raises(ValidationError):
            await service.create(
                category.id,
                words=json.dumps(DIALECTS[:1]),
                media=dialect_audio(audio_3=make_file(10, ".mp3")),
            )

        assert blob_store.events == []

    @pytest.mark.asyncio
    async def test_failed_audio_releases_uploaded_image(self, service, category, blob_store, make_file, monkeypatch):
        original_upload = blob_store.upload

        async def upload(local_path, folder, resource_type, format=None):
            if resource_type == "video":
                raise UploadFailed("timeout")
            return await original_upload(local_path, folder, resource_type, format)

        monkeypatch.setattr(blob_store, "upload", upload)
        media = dialect_audio(audio_0=make_file(10, ".mp3"))
        media.add(UploadSlot(None, MediaKind.IMAGE), make_file(10, ".png"))

        with pytest.raises(UploadFailed):
            await service.create(category.id, words=json.dumps(DIALECTS), media=media)

        assert blob_store.destroyed == [(blob_store.uploads[0]["public_id"], "image")]
        assert await service.list_words() == []


class TestUpdate:
    @pytest_asyncio.fixture
    async def word(self, service, category, make_file):
        return await service.create(
            category.id,
            words=json.dumps(DIALECTS),
            media=dialect_audio(audio_0=make_file(10, ".mp3"), audio_1=make_file(10, ".mp3")),
        )

    @pytest.mark.asyncio
    async def test_one_dialect_audio_is_replaced(self, service, word, blob_store, make_file):
        old = [e["audio"] for e in word.words]

        updated = await service.update(
            word.id, words=json.dumps(DIALECTS), media=dialect_audio(audio_1=make_file(10, ".mp3"))
        )

        assert blob_store.destroyed == [(resolve_public_id(old[1]), "video")]
        assert updated.words[0]["audio"] == old[0]
        assert updated.words[1]["audio"] not in (None, old[1])
        assert updated.words[2]["audio"] is None

    @pytest.mark.asyncio
    async def test_dropped_entry_audio_is_released(self, service, word, blob_store):
        old = [e["audio"] for e in word.words]

        updated = await service.update(word.id, words=json.dumps(DIALECTS[:1]))

        assert len(updated.words) == 1
        assert updated.words[0]["audio"] == old[0]
        assert blob_store.destroyed == [(resolve_public_id(old[1]), "video")]

    @pytest.mark.asyncio
    async def test_explicit_null_detaches_audio(self, service, word, blob_store):
        old = word.words[0]["audio"]
        words = [dict(DIALECTS[0], audio=None)] + DIALECTS[1:]

        updated = await service.update(word.id, words=json.dumps(words))

        assert updated.words[0]["audio"] is None
        assert blob_store.destroyed == [(resolve_public_id(old), "video")]

    @pytest.mark.asyncio
    async def test_category_and_status_change(self, service, word, other_category):
        updated = await service.update(word.id, category=other_category.id, status="Approved")

        assert updated.category_id == other_category.id
        assert updated.category.word == "Weather"
        assert updated.status == "Approved"
        assert len(updated.words) == 3

    @pytest.mark.asyncio
    async def test_failed_upload_keeps_finished_swaps(self, service, word, blob_store, make_file, monkeypatch):
        old = [e["audio"] for e in word.words]
        original_upload = blob_store.upload
        calls = {"n": 0}

        async def upload(local_path, folder, resource_type, format=None):
            calls["n"] += 1
            if calls["n"] == 2:
                raise UploadFailed("timeout")
            return await original_upload(local_path, folder, resource_type, format)

        monkeypatch.setattr(blob_store, "upload", upload)

        with pytest.raises(UploadFailed):
            await service.update(
                word.id,
                media=dialect_audio(audio_0=make_file(10, ".mp3"), audio_1=make_file(10, ".mp3")),
            )

        stored = await service.get(word.id)
        assert stored.words[0]["audio"] not in (None, old[0])
        assert stored.words[1]["audio"] is None
        assert [rt for _, rt in blob_store.destroyed] == ["video", "video"]


class TestModeration:
    @pytest_asyncio.fixture
    async def word(self, service, category):
        return await service.create(category.id, words=json.dumps(DIALECTS))

    @pytest.mark.asyncio
    async def test_approve_and_hide(self, service, word):
        assert (await service.approve(word.id)).status == "Approved"
        assert (await service.hide(word.id)).status == "Hidden"
        assert (await service.approve(word.id)).status == "Approved"

    @pytest.mark.asyncio
    async def test_resending_pending_status_keeps_word_pending(self, service, word):
        updated = await service.update(word.id, words=json.dumps(DIALECTS[:2]), status="Pending")

        assert updated.status == "Pending"
        assert len(updated.words) == 2

    @pytest.mark.asyncio
    async def test_status_cannot_return_to_pending(self, service, word):
        await service.hide(word.id)

        with pytest.raises(InvalidTransition):
            await service.update(word.id, status="Pending")

    @pytest.mark.asyncio
    async def test_move_hidden_word_approves_it(self, service, word, other_category):
        await service.hide(word.id)

        moved = await service.move(word.id, other_category.id)

        assert moved.status == "Approved"
        assert moved.category_id == other_category.id

    @pytest.mark.asyncio
    async def test_move_to_unknown_category(self, service, word):
        with pytest.raises(NotFoundError):
            await service.move(word.id, 999)

    @pytest.mark.asyncio
    async def test_status_listings(self, service, category, word):
        second = await service.create(category.id, words=json.dumps(DIALECTS[2:]))
        await service.approve(second.id)

        assert [w.id for w in await service.list_words(WordStatus.PENDING)] == [word.id]
        assert [w.id for w in await service.by_category(category.id)] == [second.id]
        assert len(await service.list_words()) == 2

    @pytest.mark.asyncio
    async def test_unknown_word(self, service):
        with pytest.raises(NotFoundError):
            await service.approve(404)


class TestDeleteAndSearch:
    @pytest.mark.asyncio
    async def test_delete_releases_every_dialect_audio(self, service, category, blob_store, make_file):
        word = await service.create(
            category.id,
            words=json.dumps(DIALECTS),
            media=dialect_audio(audio_0=make_file(10, ".mp3"), audio_2=make_file(10, ".mp3")),
        )

        await service.delete(word.id)

        assert len(blob_store.destroyed) == 2
        with pytest.raises(NotFoundError):
            await service.get(word.id)

    @pytest.mark.asyncio
    async def test_search_matches_any_dialect_and_meaning(self, service, category):
        word = await service.create(category.id, words=json.dumps(DIALECTS))

        assert [w.id for w in await service.search("saba")] == [word.id]
        assert [w.id for w in await service.search("MORNING")] == [word.id]
        assert await service.search("evening") == []

    @pytest.mark.asyncio
    async def test_referenced_public_ids(self, service, session, category, make_file):
        media = dialect_audio(audio_1=make_file(10, ".mp3"))
        media.add(UploadSlot(None, MediaKind.IMAGE), make_file(10, ".jpg"))
        word = await service.create(category.id, words=json.dumps(DIALECTS), media=media)

        referenced = await referenced_public_ids(session)

        assert referenced == {resolve_public_id(word.image), resolve_public_id(word.words[1]["audio"])}
