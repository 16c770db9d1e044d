"""
Batch Runner Module

Loads an input document, builds a fresh ledger from it, replays the commands
and writes the ordered results.
"""

import json
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .commands import CommandOutput
from .dispatch import CommandDispatcher, CommandInvoker
from .identifiers import IdentifierGenerator
from .ledger import Ledger
from .logging_config import get_logger, log_action
from .schemas import BatchDocument

logger = get_logger("banking_engine.batch")


def load_document(path: Union[str, Path]) -> BatchDocument:
    """
    Read and validate a batch document

    Raises:
        pydantic.ValidationError: If the document does not match the schema
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return BatchDocument.model_validate(data)


def build_ledger(document: BatchDocument, identifiers: Optional[IdentifierGenerator] = None,
                 today: Optional[Callable[[], date]] = None) -> Ledger:
    """Create the ledger state described by a document"""
    return Ledger(
        users=[u.to_user() for u in document.users],
        rates=[r.to_rate() for r in document.exchange_rates],
        identifiers=identifiers,
        today=today
    )


def run_document(document: BatchDocument, identifiers: Optional[IdentifierGenerator] = None,
                 today: Optional[Callable[[], date]] = None) -> List[Dict[str, Any]]:
    """Replay every command of a document and return the results in order"""
    ledger = build_ledger(document, identifiers=identifiers, today=today)
    invoker = CommandInvoker(CommandDispatcher(ledger, CommandOutput()))

    for entry in document.commands:
        invoker.add_command(entry.to_command())

    output = invoker.execute()
    log_action(logger, "info", "Document processed", action="run_document",
               extra={"users": len(document.users), "commands": len(document.commands),
                      "results": len(output)})
    return output.entries


def write_results(path: Union[str, Path], results: List[Dict[str, Any]]) -> None:
    """Write results as pretty-printed JSON"""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2)
        f.write("\n")
