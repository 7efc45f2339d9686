"""Mock directory server implementing the reconciler's directory contract"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException

from lifecycle_reconciler.utils.date_utils import EPOCH, ensure_utc, is_never_expires, parse_directory_timestamp

# Support both local development and Docker
DATA_DIR = Path("/directory_stub") if os.path.exists("/directory_stub") else Path(__file__).resolve().parent / "stub"


def load_stub_accounts() -> List[Dict[str, Any]]:
    file = DATA_DIR / "accounts.json"
    if not file.exists():
        return []
    return json.loads(file.read_text())["accounts"]


def _matches(
    record: Dict[str, Any],
    enabled: Optional[bool],
    last_activity_before: Optional[datetime],
    has_expiration: Optional[bool],
) -> bool:
    if enabled is not None and record.get("enabled", True) != enabled:
        return False
    if last_activity_before is not None:
        last_activity = parse_directory_timestamp(record.get("last_activity_at")) or EPOCH
        if last_activity > ensure_utc(last_activity_before):
            return False
    if has_expiration is not None:
        expires = not is_never_expires(parse_directory_timestamp(record.get("expires_at")))
        if expires != has_expiration:
            return False
    return True


def create_app(accounts: Optional[List[Dict[str, Any]]] = None) -> FastAPI:
    app = FastAPI(title="Mock Directory Server", version="1.0.0")
    store: Dict[str, Dict[str, Any]] = {
        record["account_id"]: dict(record) for record in (accounts if accounts is not None else load_stub_accounts())
    }
    app.state.store = store

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/accounts")
    def list_accounts(
        enabled: Optional[bool] = None,
        last_activity_before: Optional[datetime] = None,
        has_expiration: Optional[bool] = None,
        search_base: Optional[str] = None,
    ):
        return {
            "accounts": [
                record
                for record in store.values()
                if _matches(record, enabled, last_activity_before, has_expiration)
            ]
        }

    @app.get("/accounts/{account_id}")
    def get_account(account_id: str):
        if account_id not in store:
            raise HTTPException(status_code=404, detail="account not found")
        return store[account_id]

    @app.patch("/accounts/{account_id}")
    def update_account(account_id: str, changes: Dict[str, Any] = Body(...)):
        if account_id not in store:
            raise HTTPException(status_code=404, detail="account not found")
        for field in ("enabled", "description"):
            if field in changes:
                store[account_id][field] = changes[field]
        return store[account_id]

    return app


app = create_app()
