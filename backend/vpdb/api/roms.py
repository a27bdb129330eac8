"""ROM endpoints"""
from fastapi import Depends, status

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import get_or_404
from vpdb.api.moderate import moderate, notify_pending
from vpdb.api.response import api_router, pagination, success
from vpdb.models.game import Game
from vpdb.models.moderation import ModerationEvent
from vpdb.models.release import Rom
from vpdb.schemas.release import ModerationRequest, ModerationResponse, RomCreate, RomResponse
from vpdb.utils import moderation
from vpdb.utils.cache import CacheRoute
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.scope import Scope

router = api_router(tags=["roms"])

CACHE_ROUTES = (
    CacheRoute("/v1/roms", resources=("rom",)),
    CacheRoute("/v1/roms/{rom_id}", entities=(("rom", "rom_id"),)),
    CacheRoute("/v1/games/{game_id}/roms", resources=("rom",), entities=(("game", "game_id"),)),
)


def serialize(ctx: Context, rom: Rom, detailed: bool = False) -> RomResponse:
    data = RomResponse.model_validate(rom)
    if detailed and moderation.can_see_moderation(rom, ctx.user):
        data.moderation = ModerationResponse(**moderation.serialize(ctx.db, rom))
    return data


def _list(ctx: Context, query):
    query = moderation.apply_list_filter(query, Rom, ctx.user, ctx.query.get("moderation"))
    page = pagination(ctx.request)
    roms = page.apply(query.order_by(Rom.id.asc()))
    return success(ctx, [serialize(ctx, rom) for rom in roms], pagination=page)


@router.get("/roms")
def list_roms(ctx: Context = Depends(anon())):
    return _list(ctx, ctx.db.query(Rom))


@router.get("/games/{game_id}/roms")
def list_game_roms(game_id: str, ctx: Context = Depends(anon())):
    game = get_or_404(ctx.db, Game, game_id, "game")
    return _list(ctx, ctx.db.query(Rom).filter(Rom.game_pk == game.pk))


@router.get("/roms/{rom_id}")
def view_rom(rom_id: str, ctx: Context = Depends(anon())):
    rom = get_or_404(ctx.db, Rom, rom_id, "rom")
    moderation.assert_visible(rom, ctx.user)
    return success(ctx, serialize(ctx, rom, detailed=True))


@router.post("/games/{game_id}/roms", status_code=status.HTTP_201_CREATED)
def create_rom(game_id: str, body: RomCreate, ctx: Context = Depends(auth("roms", "add", [Scope.ALL, Scope.CREATE]))):
    """Add a ROM to a game. The ID is the ROM name and must be unique."""
    game = get_or_404(ctx.db, Game, game_id, "game")
    if ctx.db.query(Rom).filter(Rom.id == body.id).first():
        raise ApiValidationError([field_error("id", f'The ROM "{body.id}" already exists.', body.id)])

    rom = Rom(**body.model_dump(), game_pk=game.pk, created_by_pk=ctx.user.pk)
    ctx.db.add(rom)
    moderation.handle_create(ctx.db, rom, ctx.user)
    ctx.db.commit()
    ctx.db.refresh(rom)

    log_event(ctx, "create_rom", {"rom": {"id": rom.id}, "game": {"id": game.id}}, game=game, is_public=rom.is_approved)
    notify_pending(ctx, rom, rom.id)
    ctx.api_cache.invalidate_entity("rom", rom.id, game=game.id)

    return success(ctx, serialize(ctx, rom, detailed=True), status.HTTP_201_CREATED)


@router.delete("/roms/{rom_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rom(rom_id: str, ctx: Context = Depends(auth("roms", "delete-own", [Scope.ALL, Scope.CREATE]))):
    rom = get_or_404(ctx.db, Rom, rom_id, "rom")
    if rom.created_by_pk != ctx.user.pk and not ctx.is_allowed("roms", "delete"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Only moderators or owners of the ROM can delete it.")

    game = rom.game
    ctx.db.query(ModerationEvent).filter(
        ModerationEvent.entity_type == "rom", ModerationEvent.entity_pk == rom.pk
    ).delete(synchronize_session=False)
    ctx.db.delete(rom)
    ctx.db.commit()

    log_event(ctx, "delete_rom", {"rom": {"id": rom_id}}, game=game)
    ctx.api_cache.invalidate_entity("rom", rom_id, game=game.id)

    return success(ctx, None, status.HTTP_204_NO_CONTENT)


@router.post("/roms/{rom_id}/moderate")
def moderate_rom(rom_id: str, body: ModerationRequest, ctx: Context = Depends(auth("roms", "moderate", [Scope.ALL]))):
    rom = get_or_404(ctx.db, Rom, rom_id, "rom")
    return success(ctx, moderate(ctx, rom, body, rom.id, game=rom.game))
