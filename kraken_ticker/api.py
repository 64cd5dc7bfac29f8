"""
Read-only REST API over the ticker store and CSV archives, using FastAPI.
No secrets, no auth. Serve with uvicorn (see `kraken-ticker api` / `serve`).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import pandas as pd
from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse

from . import __version__, config
from .archive import CsvArchiver
from .core.errors import KrakenTickerError
from .providers.kraken import KrakenTickerProvider
from .read_api import load_pair_health, load_ticker, load_tickers

logger = logging.getLogger(__name__)

app = FastAPI(title="Kraken Ticker API", version=__version__)


def _db_path() -> str:
    return config.db_path()


def _archive_dir() -> str:
    return config.archive_dir()


def _provider() -> KrakenTickerProvider:
    return KrakenTickerProvider(base_url=config.kraken_base_url(), timeout_s=config.kraken_timeout_s())


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    return df.astype(object).where(df.notna(), None).to_dict(orient="records")


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.get("/pair/{name}")
def pair(name: str) -> Dict[str, Any]:
    row = load_ticker(_db_path(), name)
    if row is None:
        raise HTTPException(404, detail=f"No data found for {name}")
    return row


@app.get("/tickers")
def tickers() -> List[Dict[str, Any]]:
    return _records(load_tickers(_db_path()))


@app.get("/pairs")
def pairs() -> List[str]:
    return CsvArchiver(_archive_dir()).archived_pairs()


@app.get("/download/{pair}")
def download(pair: str) -> FileResponse:
    latest = CsvArchiver(_archive_dir()).latest_archive(pair)
    if latest is None:
        raise HTTPException(404, detail=f"No archive file found for pair {pair}")
    return FileResponse(latest, media_type="text/csv", filename=latest.name)


@app.get("/status")
def status() -> Dict[str, Any]:
    try:
        return _provider().get_system_status()
    except KrakenTickerError as exc:
        logger.warning("SystemStatus request failed: %s", exc)
        raise HTTPException(502, detail="Kraken status request failed")


@app.get("/health/pairs")
def pair_health() -> List[Dict[str, Any]]:
    return _records(load_pair_health(_db_path()))
