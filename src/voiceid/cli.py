"""Command line interface for enrolling and identifying speakers from audio files."""

from __future__ import annotations

import json
import os
from pathlib import Path

import numpy as np
import soundfile as sf
import typer

from .config import MatchConfig
from .errors import VoiceIDError
from .identifier import VoiceIdentifier
from .io.record_store import JSONRecordStore
from .registry import EnrollAction, SpeakerRegistry

app = typer.Typer(help="MFCC speaker identification over a JSON voice record store.")

DEFAULT_STORE = Path("registry") / "voice_records.json"


def _store_path(store: Path | None) -> Path:
    if store is not None:
        return store
    env_path = os.getenv("VOICEID_STORE")
    return Path(env_path) if env_path else DEFAULT_STORE


def read_audio(path: Path) -> tuple[np.ndarray, int]:
    """Read ``path`` as mono float32, averaging channels."""

    data, sr = sf.read(str(path), dtype="float32", always_2d=False)
    if data.ndim > 1:
        data = data.mean(axis=1).astype(np.float32)
    return data, int(sr)


def _identifier(store: JSONRecordStore) -> VoiceIdentifier:
    match_config = MatchConfig.from_env()
    registry = SpeakerRegistry(store.load(), session_history=match_config.session_history)
    return VoiceIdentifier(registry, match_config=match_config)


def _fail(exc: VoiceIDError) -> None:
    typer.echo(json.dumps({"error": str(exc), "type": type(exc).__name__, **exc.context}), err=True)
    raise typer.Exit(code=1)


@app.command()
def enroll(
    speaker_id: str = typer.Argument(..., help="Stable id for the speaker"),
    samples: list[Path] = typer.Argument(..., exists=True, readable=True, help="Audio samples"),
    name: str | None = typer.Option(None, help="Display name (defaults to the id)"),
    owner: bool = typer.Option(False, "--owner", help="Enroll as the device owner"),
    action: EnrollAction = typer.Option(EnrollAction.ENROLL, case_sensitive=False),
    store: Path | None = typer.Option(None, help="Voice record JSON file"),
) -> None:
    """Enroll a speaker from one or more audio files."""

    record_store = JSONRecordStore(_store_path(store))
    identifier = _identifier(record_store)
    audio: list[np.ndarray] = []
    rates: set[int] = set()
    for path in samples:
        data, sr = read_audio(path)
        audio.append(data)
        rates.add(sr)
    if len(rates) > 1:
        raise typer.BadParameter("all samples must share one sample rate")
    try:
        record = identifier.enroll(
            audio, rates.pop(), speaker_id, name or speaker_id, is_owner=owner, action=action
        )
    except VoiceIDError as exc:
        _fail(exc)
    record_store.save(identifier.registry.records())
    payload = record.to_dict()
    payload.pop("embedding")
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def identify(
    audio: list[Path] = typer.Argument(..., exists=True, readable=True, help="Utterances"),
    store: Path | None = typer.Option(None, help="Voice record JSON file"),
) -> None:
    """Identify the speaker of each file; files share one session."""

    identifier = _identifier(JSONRecordStore(_store_path(store)))
    results = []
    for path in audio:
        data, sr = read_audio(path)
        try:
            match = identifier.identify(data, sr)
        except VoiceIDError as exc:
            _fail(exc)
        results.append({"file": str(path), **match.to_dict()})
    typer.echo(json.dumps(results, indent=2))


@app.command("list")
def list_records(
    store: Path | None = typer.Option(None, help="Voice record JSON file"),
) -> None:
    """List enrolled speakers."""

    records = JSONRecordStore(_store_path(store)).load()
    rows = [
        {
            "speakerId": r.speaker_id,
            "speakerName": r.speaker_name,
            "isOwner": r.is_owner,
            "sampleCount": r.sample_count,
            "updatedAt": r.updated_at.isoformat(timespec="seconds"),
        }
        for r in sorted(records, key=lambda r: (not r.is_owner, r.speaker_id))
    ]
    typer.echo(json.dumps({"speakers": rows, "hasOwner": any(r.is_owner for r in records)}, indent=2))


@app.command()
def remove(
    speaker_id: str = typer.Argument(..., help="Speaker id to delete"),
    store: Path | None = typer.Option(None, help="Voice record JSON file"),
) -> None:
    """Delete a speaker's voice record."""

    record_store = JSONRecordStore(_store_path(store))
    registry = SpeakerRegistry(record_store.load())
    try:
        registry.remove_record(speaker_id)
    except VoiceIDError as exc:
        _fail(exc)
    record_store.save(registry.records())
    typer.echo(json.dumps({"removed": speaker_id}))


def main() -> None:  # pragma: no cover - console entry point
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
