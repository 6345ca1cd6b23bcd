"""
timestamping.cli
================

Command-line helpers around the hash derivation and proof verification used
by the registry.

  timestamping hash FILE [--json]
      Print the prover secret and the stamp hash of a file.

  timestamping verify --proof PROOF.json --hash H --sender ADDR [--vk VK.json] [--json]
      Check a snarkjs Groth16 proof against the (hash, sender) binding the
      registry enforces. Exit status 0 when valid, 1 otherwise.

The verifying key defaults to ``TIMESTAMPING_VERIFYING_KEY``.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import typer
from rich import box
from rich.console import Console
from rich.table import Table

from timestamping import logging as tlog
from timestamping.config import load_config
from timestamping.contracts.zkverify import public_inputs
from timestamping.types import to_address, to_hash
from timestamping.version import __version__
from timestamping.zk.groth16 import Groth16Verifier
from timestamping.zk.hashing import commitment, content_secret, hash_to_bytes

app = typer.Typer(
    name="timestamping",
    help="Stamp hash derivation and proof verification tools",
    no_args_is_help=True,
    add_completion=False,
)


def _die(msg: str, code: int = 2) -> None:
    typer.echo(msg.rstrip(), err=True)
    raise typer.Exit(code)


def _report(title: str, rows: Dict[str, Any]) -> None:
    t = Table(title=title, box=box.SIMPLE)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in rows.items():
        t.add_row(k, str(v))
    Console().print(t)


@app.callback(invoke_without_command=True)
def _meta(
    version: bool = typer.Option(False, "--version", "-V", help="Print version and exit", is_eager=True),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override TIMESTAMPING_LOG_LEVEL"),
) -> None:
    if version:
        typer.echo(f"timestamping {__version__}")
        raise typer.Exit(0)
    if log_level:
        tlog.configure(level=log_level, json=False)


@app.command("hash")
def hash_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="File to stamp"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Derive the secret and stamp hash of a file."""
    secret = content_secret(path.read_bytes())
    stamp_hash = hash_to_bytes(commitment(secret))
    out = {"file": str(path), "secret": str(secret), "hash": "0x" + stamp_hash.hex()}
    if json_out:
        typer.echo(json.dumps(out, indent=2, sort_keys=True))
        return
    _report("Stamp hash", out)


def _load_proof(path: Path) -> Any:
    obj = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(obj, dict) and "proof" in obj:
        return obj["proof"]
    return obj


@app.command("verify")
def verify_cmd(
    proof_path: Path = typer.Option(..., "--proof", exists=True, dir_okay=False, help="snarkjs proof JSON"),
    stamp_hash: str = typer.Option(..., "--hash", help="Stamp hash (0x-hex or decimal)"),
    sender: str = typer.Option(..., "--sender", help="Address submitting the proof (0x-hex)"),
    vk_path: Optional[Path] = typer.Option(None, "--vk", dir_okay=False, help="snarkjs verifying key JSON"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Verify a Groth16 proof for (hash, sender)."""
    vk_file = vk_path or load_config().verifying_key_path
    if vk_file is None:
        _die("no verifying key: pass --vk or set TIMESTAMPING_VERIFYING_KEY")
    try:
        h = to_hash(int(stamp_hash) if stamp_hash.isdigit() else stamp_hash)
        addr = to_address(sender)
        verifier = Groth16Verifier.from_file(vk_file)
        proof = _load_proof(proof_path)
    except (OSError, ValueError, TypeError, KeyError) as e:
        _die(f"[verify] {e}")
        return

    inputs: List[int] = public_inputs(h, addr)
    ok = verifier.verify(proof, inputs)
    out = {
        "ok": ok,
        "hash": "0x" + h.hex(),
        "sender": "0x" + addr.hex(),
        "public_inputs": [str(v) for v in inputs],
    }
    if json_out:
        typer.echo(json.dumps(out, indent=2, sort_keys=True))
    else:
        _report("Proof verification", out)
    raise typer.Exit(0 if ok else 1)


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point; returns the process exit status."""
    try:
        rv = app(args=argv if argv is not None else sys.argv[1:], standalone_mode=False, prog_name="timestamping")
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except (click.exceptions.Abort, KeyboardInterrupt):
        typer.echo("", err=True)
        return 130
    return rv if isinstance(rv, int) else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
