"""Reader session state and tag event handling."""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from smartcard.CardMonitoring import CardObserver

from ..card.data import CardData
from ..card.reading import read_structured_data
from ..card.sync import merge_and_write
from .constants import READ_MODE_DELAY, VCARD_PROFILE_BASE_URL
from .reader import NFCReader


class Mode(Enum):
    READ = 'READ'
    WRITE = 'WRITE'


@dataclass
class TagEvent:
    """What happened when a tag was tapped or removed."""
    status: str  # read, success, error, waiting, busy, removed
    mode: Mode
    message: str = ""
    uid: Optional[str] = None
    data: Optional[CardData] = None
    records_written: int = 0
    reader: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class CardSession:
    """State of the one active reader session.

    Created when tag monitoring starts and dropped when it stops. Every tag
    handler receives the session instead of reaching for module globals. At
    most one write runs at a time; a tap that arrives while a write is in
    flight is dropped, not queued.
    """

    def __init__(self, on_event: Optional[Callable[[TagEvent], None]] = None,
                 base_url: str = VCARD_PROFILE_BASE_URL,
                 sleep: Callable[[float], None] = time.sleep):
        self.on_event = on_event
        self.base_url = base_url
        self.sleep = sleep
        self.mode = Mode.READ
        self.pending_write: Optional[CardData] = None
        self._write_lock = threading.Lock()

    @property
    def write_in_progress(self) -> bool:
        return self._write_lock.locked()

    def set_mode(self, mode) -> Mode:
        try:
            self.mode = mode if isinstance(mode, Mode) else Mode(mode)
        except ValueError:
            raise ValueError('Invalid mode. Must be "READ" or "WRITE"')
        logging.info(f"Mode changed to: {self.mode.value}")
        return self.mode

    def prepare_write(self, data: CardData) -> Dict[str, str]:
        self.pending_write = data
        logging.info("Write data prepared. Waiting for card tap...")
        return {'status': 'ready', 'message': 'Data prepared. Please tap your card now.'}

    def cancel_write(self) -> Dict[str, str]:
        self.pending_write = None
        logging.info("Write operation cancelled")
        return {'status': 'cancelled', 'message': 'Write operation cancelled'}

    def _emit(self, event: TagEvent) -> TagEvent:
        if self.on_event:
            self.on_event(event)
        return event

    def handle_tag_present(self, reader) -> TagEvent:
        """Handle a tap: read the card, or write the pending payload."""
        mode = self.mode
        name = getattr(reader, 'name', None)
        try:
            uid = reader.read_tag_uid()
            logging.info(f"Card detected: {uid}")

            if mode is Mode.READ:
                self.sleep(READ_MODE_DELAY)
                data = read_structured_data(reader, sleep=self.sleep)
                return self._emit(TagEvent('read', mode, uid=uid, data=data, reader=name))

            payload = self.pending_write
            if payload is None:
                logging.info("WRITE mode - but no data prepared")
                return self._emit(TagEvent('waiting', mode, 'Click "Write to Card" button first',
                                           uid=uid, reader=name))

            if not self._write_lock.acquire(blocking=False):
                logging.warning("Write already in progress - ignoring tap")
                return self._emit(TagEvent('busy', mode, 'Write already in progress',
                                           uid=uid, reader=name))
            try:
                result = merge_and_write(reader, payload, base_url=self.base_url, sleep=self.sleep)
                if self.pending_write is payload:
                    self.pending_write = None
            finally:
                self._write_lock.release()

            if result.success:
                message = f"Smart Sync successful! {result.records_written} records written"
                return self._emit(TagEvent('success', mode, message, uid=uid,
                                           records_written=result.records_written, reader=name))
            return self._emit(TagEvent('error', mode, result.message, uid=uid, reader=name))

        except Exception as e:
            logging.error(f"Tag handling failed: {e}")
            return self._emit(TagEvent('error', mode, str(e), reader=name))

    def handle_tag_removed(self) -> TagEvent:
        logging.info("Card removed")
        return self._emit(TagEvent('removed', self.mode))


class SessionObserver(CardObserver):
    """Feed pyscard card insertion/removal events into a CardSession."""

    def __init__(self, session: CardSession):
        self.session = session

    def update(self, observable, actions):
        (addedcards, removedcards) = actions

        for card in addedcards:
            reader = NFCReader(card.createConnection(), name=str(card.reader))
            try:
                reader.connect()
                self.session.handle_tag_present(reader)
            except Exception as e:
                logging.error(f"Card handling failed: {e}")
            finally:
                try:
                    reader.close()
                except Exception as e:
                    logging.debug(f"Disconnect after tap failed: {e}")

        for _ in removedcards:
            self.session.handle_tag_removed()
