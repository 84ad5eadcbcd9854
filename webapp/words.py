from fastapi import APIRouter, Depends, Query, Request

from models import WordStatus
from services.uploads import StagingArea, demultiplex
from services.words import WordService
from webapp.auth import require_admin
from webapp.dependencies import get_upload_dir, get_word_service, read_form
from webapp.schemas import MoveRequest, word_out

router = APIRouter(prefix="/words", tags=["words"])


def _words_payload(words):
    return {"success": True, "words": [word_out(w) for w in words]}


@router.post("", status_code=201)
async def add_word(
    request: Request,
    service: WordService = Depends(get_word_service),
    upload_dir: str = Depends(get_upload_dir),
):
    """Новое слово от участника, всегда попадает на модерацию"""
    fields, files = await read_form(request)

    async with StagingArea(upload_dir) as staging:
        media = await demultiplex(files, fields.get("uploads"), staging)
        word = await service.create(
            category=fields.get("category"),
            words=fields.get("words"),
            word=fields.get("word"),
            translation=fields.get("translation"),
            description=fields.get("description"),
            uploaded_by=fields.get("uploadedBy"),
            media=media,
        )

    return {"success": True, "word": word_out(word)}


@router.get("")
async def get_words(service: WordService = Depends(get_word_service)):
    return _words_payload(await service.list_words())


@router.get("/approved")
async def get_approved_words(service: WordService = Depends(get_word_service)):
    return _words_payload(await service.list_words(WordStatus.APPROVED))


@router.get("/hidden")
async def get_hidden_words(service: WordService = Depends(get_word_service)):
    return _words_payload(await service.list_words(WordStatus.HIDDEN))


@router.get("/pending", dependencies=[Depends(require_admin)])
async def get_pending_words(service: WordService = Depends(get_word_service)):
    return _words_payload(await service.list_words(WordStatus.PENDING))


@router.get("/search")
async def search_words(query: str = Query(...), service: WordService = Depends(get_word_service)):
    """Поиск по слову и переводам без учета регистра"""
    return _words_payload(await service.search(query))


@router.get("/category/{category_id}")
async def get_words_by_category(category_id: int, service: WordService = Depends(get_word_service)):
    """Одобренные слова категории"""
    return _words_payload(await service.by_category(category_id))


@router.put("/approve/{word_id}", dependencies=[Depends(require_admin)])
async def approve_word(word_id: int, service: WordService = Depends(get_word_service)):
    return {"success": True, "word": word_out(await service.approve(word_id))}


@router.put("/hide/{word_id}", dependencies=[Depends(require_admin)])
async def hide_word(word_id: int, service: WordService = Depends(get_word_service)):
    return {"success": True, "word": word_out(await service.hide(word_id))}


@router.put("/move/{word_id}", dependencies=[Depends(require_admin)])
async def move_word(word_id: int, payload: MoveRequest, service: WordService = Depends(get_word_service)):
    """Перенос в другую категорию, слово при этом одобряется"""
    return {"success": True, "word": word_out(await service.move(word_id, payload.newCategory))}


@router.put("/{word_id}", dependencies=[Depends(require_admin)])
async def update_word(
    word_id: int,
    request: Request,
    service: WordService = Depends(get_word_service),
    upload_dir: str = Depends(get_upload_dir),
):
    fields, files = await read_form(request)

    async with StagingArea(upload_dir) as staging:
        media = await demultiplex(files, fields.get("uploads"), staging)
        word = await service.update(
            word_id,
            words=fields.get("words"),
            category=fields.get("category"),
            status=fields.get("status"),
            media=media,
        )

    return {"success": True, "word": word_out(word)}


@router.delete("/{word_id}", dependencies=[Depends(require_admin)])
async def delete_word(word_id: int, service: WordService = Depends(get_word_service)):
    """Удаление слова и аудио всех диалектов"""
    await service.delete(word_id)
    return {"success": True, "message": "Word and associated files deleted successfully"}
