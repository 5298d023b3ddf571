from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from .bank.loader import load_bank
from .config import load_settings
from .errors import BankValidationError, SIFError
from .ledger.answer_log import AnswerLog
from .orchestrator.extract import write_extract
from .orchestrator.script import load_script, replay_script
from .orchestrator.session import SIFSession
from .schemas import export_schemas
from .verdict.table import table_rows
from .verify.invariants import check_bank_invariants

app = typer.Typer(help="SIF identity resolution CLI")
console = Console()

BANK_FILE_OPTION = typer.Option(..., "--bank-file", exists=True, dir_okay=False)
ANSWERS_FILE_OPTION = typer.Option(..., "--answers-file", exists=True, dir_okay=False)
CONFIG_OPTION = typer.Option(None, "--config", exists=True, dir_okay=False)
OUT_DIR_OPTION = typer.Option(None, "--out")
LOG_FILE_OPTION = typer.Option(..., "--log-file", exists=True, dir_okay=False)
SCHEMA_OUT_OPTION = typer.Option(Path("schemas"), "--out-dir")
LOG_LEVEL_OPTION = typer.Option("WARNING", "--log-level", help="Python logging level.")
SAMPLES_OPTION = typer.Option(25, "--samples", min=1)
SEED_OPTION = typer.Option(0, "--seed")

bank_app = typer.Typer(help="Question bank commands")
session_app = typer.Typer(help="Session commands")
ledger_app = typer.Typer(help="Answer log commands")
verdict_app = typer.Typer(help="Verdict table")
schema_app = typer.Typer(help="Schema utilities")


@app.callback()
def main(log_level: str = LOG_LEVEL_OPTION) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _fail(exc: SIFError) -> NoReturn:
    console.print(f"[red]{exc.failure_atom}[/red] {exc.detail}")
    raise typer.Exit(code=1)


@bank_app.command("validate")
def bank_validate_cmd(bank_file: Path = BANK_FILE_OPTION) -> None:
    table = Table(title="Bank Validation")
    table.add_column("Level")
    table.add_column("Message")
    try:
        bank = load_bank(bank_file)
    except BankValidationError as exc:
        for message in exc.errors:
            table.add_row("error", message)
        for message in exc.warnings:
            table.add_row("warning", message)
        console.print(table)
        raise typer.Exit(code=1)
    except SIFError as exc:
        _fail(exc)
    for message in bank.report.warnings:
        table.add_row("warning", message)
    console.print(table)
    console.print({"ok": True, "questions": len(bank), "bank_hash": bank.bank_hash()})


@bank_app.command("check")
def bank_check_cmd(
    bank_file: Path = BANK_FILE_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    samples: int = SAMPLES_OPTION,
    seed: int = SEED_OPTION,
) -> None:
    try:
        bank = load_bank(bank_file)
        report = check_bank_invariants(bank, load_settings(config), samples, seed)
    except SIFError as exc:
        _fail(exc)
    console.print(report.model_dump())
    if report.verdict != "PASS":
        raise typer.Exit(code=1)


@session_app.command("run")
def session_run_cmd(
    bank_file: Path = BANK_FILE_OPTION,
    answers_file: Path = ANSWERS_FILE_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    out: Optional[Path] = OUT_DIR_OPTION,
) -> None:
    try:
        bank = load_bank(bank_file)
        session = SIFSession(bank, load_settings(config))
        result = replay_script(session, load_script(answers_file))
    except SIFError as exc:
        _fail(exc)

    table = Table(title="SIF Result")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("primary", result.primary.face)
    table.add_row("secondary", result.secondary.face)
    table.add_row("prize", f"{result.prize.face} ({result.prize_role})")
    table.add_row("badge", result.badge)
    table.add_row("aligned", str(result.aligned))
    table.add_row("anchor_source", result.anchor_source)
    if result.collision is not None:
        collision = result.collision
        table.add_row("collision", f"{collision.installed_face} -> {collision.downgraded_to}")
    for finding in result.severity:
        table.add_row(f"severity {finding.family}", f"{finding.resolved}: {finding.action}")
    if result.pending_severity:
        table.add_row("pending_severity", ",".join(result.pending_severity))
    table.add_row("friction", ", ".join(f"{k}={v}" for k, v in result.friction.items()) or "-")
    table.add_row("result_hash", result.stable_hash())
    console.print(table)

    if out is not None:
        paths = write_extract(session, out)
        console.print({name: str(path) for name, path in paths.items()})


@ledger_app.command("verify")
def ledger_verify_cmd(log_file: Path = LOG_FILE_OPTION) -> None:
    ok, message = AnswerLog.verify_chain(log_file)
    console.print({"ok": ok, "message": message})
    if not ok:
        raise typer.Exit(code=1)


@verdict_app.command("table")
def verdict_table_cmd() -> None:
    table = Table(title="Module Verdict Table")
    table.add_column("CO1 CO2 CF")
    table.add_column("Verdict")
    for key, verdict in table_rows():
        table.add_row(key, verdict)
    console.print(table)


@schema_app.command("export")
def schema_export_cmd(out_dir: Path = SCHEMA_OUT_OPTION) -> None:
    export_schemas(str(out_dir))
    console.print({"schemas": str(out_dir)})


app.add_typer(bank_app, name="bank")
app.add_typer(session_app, name="session")
app.add_typer(ledger_app, name="ledger")
app.add_typer(verdict_app, name="verdict")
app.add_typer(schema_app, name="schema")

if __name__ == "__main__":
    app()
