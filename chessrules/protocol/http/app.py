from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field

from .error import (
    board_invariant_handler,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import GameSession, InMemorySessionStore
from ...engine.board import BoardInvariantError, PieceRecord
from ...engine.game import Game, GameStatus, MoveOutcome, CastleOutcome
from ...engine.move import parse_uci, square_to_str, str_to_square
from ...engine.perft import perft as perft_nodes
from ...engine.pieces import LETTER_TO_KIND, Color, PieceKind, Wing


logger = logging.getLogger(__name__)


class PieceModel(BaseModel):
    square: str = Field(..., description="Algebraic square, e.g. e1")
    kind: PieceKind
    color: Color
    has_moved: bool = False


class GameState(BaseModel):
    game_id: str
    fen: str
    side_to_move: Color
    status: GameStatus
    in_check: bool
    winner: Optional[Color]
    pieces: List[PieceModel]
    legal_moves: List[str]
    last_move: Optional[str]
    move_history: List[str]


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class MoveRequest(BaseModel):
    move: str = Field(..., description="Coordinate move string, e.g., e2e4 or e7e8n")


class MoveResponse(GameState):
    captured: Optional[PieceKind] = None


class CastleRequest(BaseModel):
    wing: Wing


class SetPositionRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="FEN string")
    pieces: Optional[List[PieceModel]] = None
    side_to_move: Color = Color.WHITE


class PerftRequest(BaseModel):
    fen: Optional[str] = None
    depth: int = Field(default=1, ge=0, le=3)


def create_app() -> FastAPI:
    app = FastAPI(title="Chess Rules API", version="0.1.0")

    # Basic logging setup
    logging.basicConfig(level=logging.INFO)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(BoardInvariantError, board_invariant_handler)
    app.add_exception_handler(Exception, exception_handler)

    store = InMemorySessionStore()
    app.state.sessions = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game() -> CreateGameResponse:
        game_id = store.create(Game.new())
        logger.info("game created", extra={"game_id": game_id})
        session = _require_session(store, game_id)
        with session.lock:
            return CreateGameResponse(game_id=game_id, fen=session.game.to_fen())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        session = _require_session(store, game_id)
        with session.lock:
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/move", response_model=MoveResponse)
    async def make_move(game_id: str, req: MoveRequest) -> MoveResponse:
        session = _require_session(store, game_id)
        try:
            move = parse_uci(req.move)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        promotion = LETTER_TO_KIND[move.promotion] if move.promotion else None
        with session.lock:
            result = session.game.attempt_move(move.origin, move.destination, promotion)
            if result.outcome is MoveOutcome.REJECTED_GAME_OVER:
                raise HTTPException(status_code=409, detail="game is over")
            if not result.accepted:
                raise HTTPException(status_code=400, detail=result.outcome.value)
            state = _game_state(game_id, session.game)
        return MoveResponse(**state.model_dump(), captured=result.captured)

    @app.post("/api/games/{game_id}/castle", response_model=GameState)
    async def castle(game_id: str, req: CastleRequest) -> GameState:
        session = _require_session(store, game_id)
        with session.lock:
            if session.game.is_over:
                raise HTTPException(status_code=409, detail="game is over")
            if session.game.attempt_castle(req.wing) is not CastleOutcome.ACCEPTED:
                raise HTTPException(status_code=400, detail=f"cannot castle {req.wing.value}")
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        session = _require_session(store, game_id)
        with session.lock:
            try:
                session.game.undo_move()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return _game_state(game_id, session.game)

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        _require_session(store, game_id)
        try:
            game = _game_from_request(req)
        except ValueError as e:
            # Session keeps its current game when the position cannot be loaded
            raise HTTPException(status_code=400, detail=f"invalid position: {e}")
        try:
            store.replace(game_id, game)
        except KeyError:
            # Deleted between the lookup and the replace
            raise HTTPException(status_code=404, detail="game not found")
        session = _require_session(store, game_id)
        with session.lock:
            return _game_state(game_id, session.game)

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, str]:
        _require_session(store, game_id)
        store.delete(game_id)
        return {"status": "deleted"}

    @app.post("/api/perft")
    async def perft(req: PerftRequest) -> Dict[str, int]:
        try:
            game = Game.from_fen(req.fen) if req.fen else Game.new()
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid FEN")
        nodes = perft_nodes(game.board, game.side_to_move, req.depth)
        return {"nodes": nodes, "depth": req.depth}

    return app


def _require_session(store: InMemorySessionStore, game_id: str) -> GameSession:
    session = store.get(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail="game not found")
    return session


def _game_from_request(req: SetPositionRequest) -> Game:
    if req.fen is not None and req.pieces is not None:
        raise ValueError("give either fen or pieces, not both")
    if req.fen is not None:
        return Game.from_fen(req.fen)
    if req.pieces is None:
        raise ValueError("fen or pieces is required")
    records = [
        PieceRecord(str_to_square(p.square), p.kind, p.color, p.has_moved) for p in req.pieces
    ]
    return Game.from_records(records, req.side_to_move)


def _game_state(game_id: str, game: Game) -> GameState:
    history = game.move_history_uci()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        side_to_move=game.side_to_move,
        status=game.status,
        in_check=game.in_check(),
        winner=game.winner,
        pieces=[
            PieceModel(
                square=square_to_str(r.square), kind=r.kind, color=r.color, has_moved=r.has_moved
            )
            for r in game.board.to_records()
        ],
        legal_moves=[square_to_str(o) + square_to_str(d) for o, d in game.legal_moves()],
        last_move=history[-1] if history else None,
        move_history=history,
    )


# Default app for non-factory servers
app = create_app()
