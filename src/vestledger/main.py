"""
Main entrypoint for vestledger.

What it does:
- Loads settings from `config/config.yaml` plus environment overrides.
- Mints the scheduled total to the issuer on an in-memory `PaperAsset` and
  authorizes the ledger's custody identity to pull it.
- Registers every configured schedule against a `SimulatedClock`, then steps
  the clock forward and releases for every recipient at each step.
- Journals events to SQLite, publishes them to Redis Streams when reachable,
  and writes parquet exports of allocations and releases.

Where it is used:
- Invoked by `python -m vestledger.main` or the `vestledger` console script.

Key related modules:
- `vestledger.config.loader.Settings` and `load_settings`
- `vestledger.ledger.AllocationLedger`
- `vestledger.asset.PaperAsset` / `Custody`
"""
import logging
import os
from typing import Optional

from prometheus_client import start_http_server

from vestledger.access import AccessController
from vestledger.asset import Custody, PaperAsset
from vestledger.clock import SimulatedClock
from vestledger.config.loader import Settings, load_settings
from vestledger.events import bus
from vestledger.ledger import AllocationLedger, NothingReleasable, SQLiteJournal, replay_records


def _start_metrics(port: int) -> Optional[int]:
    try:
        start_http_server(port)
        logging.info(f"Prometheus metrics server started on :{port}")
        return port
    except OSError as e:
        logging.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None


def run(settings: Settings, clock: Optional[SimulatedClock] = None) -> AllocationLedger:
    clock = clock or SimulatedClock()
    t0 = clock.now()
    # one journal per run; replay expects a single ledger's history
    journal = SQLiteJournal(os.path.join(settings.data_dir, f"journal-{t0}.sqlite"))
    publish = bus.fanout(bus.publish, journal)

    asset = PaperAsset(settings.asset_id, decimals=settings.decimals)
    asset.mint(settings.issuer, settings.total_scheduled)
    asset.approve(settings.issuer, settings.ledger_id, settings.total_scheduled)
    access = AccessController(settings.issuer, publish=publish)
    ledger = AllocationLedger(Custody(asset, settings.ledger_id), access, clock=clock, publish=publish)

    with access.acting_as(settings.issuer):
        for s in settings.schedules:
            ledger.register(s.recipient, s.total_amount, t0 + s.start_offset_s, s.duration_s)
    logging.info(f"Registered {len(settings.schedules)} schedules, held={ledger.held_balance()}")

    for step in range(1, settings.demo.steps + 1):
        now = clock.advance(settings.demo.step_s)
        for s in settings.schedules:
            try:
                ledger.release(s.recipient)
            except NothingReleasable:
                logging.info(f"step {step}: nothing releasable for {s.recipient}")
                continue
            logging.info(
                f"step {step} t={now}: {s.recipient} balance={asset.balance_of(s.recipient)} "
                f"vested={ledger.vested_amount(s.recipient)}/{s.total_amount}"
            )
        logging.info(f"step {step}: held={ledger.held_balance()} outstanding={ledger.outstanding()}")

    replayed = replay_records(journal.load(), asset_id=settings.asset_id)
    if replayed != ledger.records():
        logging.warning("journal replay does not match ledger state")
    ledger.write_parquet(settings.data_dir)
    return ledger


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings(os.getenv("VESTLEDGER_CONFIG", "config/config.yaml"))
    logging.info(f"Asset: {settings.asset_id}, issuer: {settings.issuer}, custody: {settings.ledger_id}")

    prom_port = os.getenv("PROMETHEUS_PORT")
    if prom_port:
        _start_metrics(int(prom_port))

    run(settings)


if __name__ == "__main__":
    main()
