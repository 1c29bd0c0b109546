"""FastAPI backend for the CHE tournament editor."""

import io
import os
import time
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Dict, List, Optional, Union
from urllib.parse import quote

from fastapi import FastAPI, File, Form, UploadFile, HTTPException
from fastapi.responses import StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from dotenv import load_dotenv
from prometheus_fastapi_instrumentator import Instrumentator

from chelib import (
    parse, build_tournament, generate_team_file, load_template, load_template_file,
    validate_selection, verify_tournament, compute_standings, ResultMatrix,
    UnrecognizedFormatError, TemplateMissingError, InvalidTemplateError,
)
from chelib.standings import format_result_text
from chelib.constants import DEFAULT_TOURNAMENT_NAME
from chelib.template import template_cache

from backend.health import router as health_router, set_startup_complete
from backend.logging_config import setup_logging
from backend.metrics import prometheus as metrics
from backend.middleware.logging import RequestLoggingMiddleware
from backend.session_store import session_store

load_dotenv()

setup_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

DEFAULT_FILENAMES = {"match": "match.CHE", "team": "team.CHE"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the template, start session cleanup, and stop it on shutdown."""
    session_store.configure(
        int(os.getenv("SESSION_TTL_MINUTES", "30")),
        int(os.getenv("SESSION_CLEANUP_MINUTES", "5")),
    )

    template_path = os.getenv("TEMPLATE_PATH")
    if template_path and not template_cache.loaded:
        try:
            load_template_file(template_path)
        except (OSError, InvalidTemplateError) as e:
            logger.error("Could not load template %s: %s", template_path, e)

    await session_store.start_cleanup_task()
    set_startup_complete()
    logger.info("Startup complete", extra={"template_loaded": template_cache.loaded})

    yield

    await session_store.stop_cleanup_task()
    logger.info("Shutdown complete")


app = FastAPI(title="CHE Tournament Editor API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Session-ID", "X-Che-Team-Count",
                    "X-Che-Match-Count", "X-Che-Placed-Blocks", "X-Che-Dropped-Blocks",
                    "X-Che-Dropped-Teams", "X-Che-Warnings"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health_router)

instrumentator = Instrumentator()
instrumentator.instrument(app)
instrumentator.expose(app)


class FileInfo(BaseModel):
    filename: str
    type: str
    size: int
    digest: str
    team_count: int
    tournament_name: Optional[str] = None


class TeamInfo(BaseModel):
    id: int
    name: str
    owner: str
    origin: str
    primary_color: str
    source_file: str
    blocks: List[str]


class UploadResponse(BaseModel):
    session_id: str
    files: List[FileInfo]
    teams: List[TeamInfo]


class TemplateResponse(BaseModel):
    loaded: bool
    size: int
    newly_loaded: bool


class TeamRename(BaseModel):
    name: Optional[str] = None
    owner: Optional[str] = None


class GenerateRequest(BaseModel):
    session_id: str
    team_ids: List[int]
    tournament_name: Optional[str] = None
    format: str = "match"
    filename: Optional[str] = None
    renames: Dict[int, TeamRename] = {}


class StandingsRequest(BaseModel):
    team_names: List[str]
    team_owners: Optional[List[str]] = None
    results: List[List[Union[int, str]]]
    win_points: int = 3
    draw_points: int = 1
    loss_points: int = 0
    multipliers: Optional[List[float]] = None


def _team_info(team_id, team, filename):
    return TeamInfo(
        id=team_id,
        name=team.name,
        owner=team.owner,
        origin=team.origin.value,
        primary_color=team.primary_color.hex,
        source_file=filename,
        blocks=[b.name or f"#{b.index}" for b in team.blocks],
    )


def _file_info(filename, parsed):
    return FileInfo(
        filename=filename,
        type=parsed.kind,
        size=len(parsed.raw),
        digest=parsed.digest,
        team_count=len(parsed.teams),
        tournament_name=getattr(parsed.header, "name", None),
    )


def _get_session(session_id):
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")
    return session


@app.post("/api/upload-che", response_model=UploadResponse)
async def upload_che(
    files: List[UploadFile] = File(...),
    session_id: Optional[str] = Form(None),
):
    """Parse uploaded CHE files and add their teams to a session.

    Passing an existing session_id appends to it; otherwise a new session is
    created.
    """
    if session_id:
        session = _get_session(session_id)
    else:
        session_id, session = session_store.create()

    infos = []
    for upload in files:
        data = await upload.read()
        filename = upload.filename or "upload.CHE"
        try:
            parsed = parse(data)
        except UnrecognizedFormatError as e:
            metrics.record_parse_failure()
            logger.warning("Rejected upload %s: %s", filename, e)
            raise HTTPException(status_code=400, detail=f"{filename}: {e}")

        session.add_file(filename, parsed)
        metrics.record_upload(parsed.kind)
        infos.append(_file_info(filename, parsed))
        logger.info("Parsed %s: %s file with %d teams", filename, parsed.kind, len(parsed.teams))

    teams = [_team_info(tid, team, session.team_files[tid]) for tid, team in session.team_list()]
    return UploadResponse(session_id=session_id, files=infos, teams=teams)


@app.post("/api/template", response_model=TemplateResponse)
async def upload_template(template_file: UploadFile = File(...)):
    """Load the tournament template. The first loaded template is kept."""
    data = await template_file.read()
    was_loaded = template_cache.loaded
    try:
        cached = load_template(data)
    except InvalidTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TemplateResponse(loaded=True, size=len(cached), newly_loaded=not was_loaded)


@app.post("/api/generate-che")
async def generate_che(request: GenerateRequest):
    """Build a team or tournament file from session teams and stream it back."""
    session = _get_session(request.session_id)

    teams = []
    for team_id in request.team_ids:
        team = session.teams.get(team_id)
        if team is None:
            raise HTTPException(status_code=400, detail=f"Unknown team id {team_id}")
        rename = request.renames.get(team_id)
        if rename is not None:
            team = replace(team, name=rename.name or team.name,
                           owner=team.owner if rename.owner is None else rename.owner)
        teams.append(team)

    fmt = request.format
    errors, warnings = validate_selection(teams, fmt)
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors, "warnings": warnings})

    start = time.time()
    headers = {}
    if fmt == "team":
        data = generate_team_file(teams)
        metrics.record_generation(fmt, time.time() - start)
    else:
        name = (request.tournament_name or "").strip() or DEFAULT_TOURNAMENT_NAME
        try:
            data, report = build_tournament(teams, name)
        except TemplateMissingError as e:
            raise HTTPException(status_code=503, detail=str(e))
        metrics.record_generation(fmt, time.time() - start, len(report.dropped_blocks))

        check_errors, check_warnings = verify_tournament(data, teams, name)
        if check_errors:
            metrics.record_verify_failure()
            logger.warning("Generated file failed re-parse check: %s", "; ".join(check_errors))
        warnings.extend(check_errors + check_warnings)

        headers.update({
            "X-Che-Team-Count": str(report.team_count),
            "X-Che-Match-Count": str(report.match_count),
            "X-Che-Placed-Blocks": str(report.placed_blocks),
            "X-Che-Dropped-Blocks": str(len(report.dropped_blocks)),
            "X-Che-Dropped-Teams": str(len(report.dropped_teams)),
        })

    headers["X-Che-Warnings"] = str(len(warnings))
    headers["X-Session-ID"] = request.session_id
    filename = request.filename or DEFAULT_FILENAMES.get(fmt, "output.CHE")
    headers["Content-Disposition"] = f"attachment; filename*=UTF-8''{quote(filename)}"

    return StreamingResponse(io.BytesIO(data), media_type="application/octet-stream", headers=headers)


@app.post("/api/standings")
async def standings(request: StandingsRequest):
    """Rank teams from a result grid of ints (0-3) or labels (none/win/loss/draw)."""
    try:
        matrix = ResultMatrix.from_list(request.results)
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid result value: {e}")

    table = compute_standings(
        matrix,
        request.team_names,
        win_points=request.win_points,
        draw_points=request.draw_points,
        loss_points=request.loss_points,
        multipliers=request.multipliers,
        owners=request.team_owners,
    )
    return {"standings": [s.to_dict() for s in table], "text": format_result_text(table, matrix)}


def main():
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
