"""
Boot sequence.

Configures the modem with a fixed ordered list of commands, then reads its
identity.
"""

import logging
from typing import Callable, Optional

from .protocol import ATProtocol
from .. import commands
from ..exceptions import BootError
from ..types import BootReport, ErrorVerbosity, MessageFormat, Response, Storage

logger = logging.getLogger(__name__)


def _first_value(response: Response) -> Optional[str]:
    """First data value of a response (echo lines skipped)."""
    for item in response.items:
        if item.data:
            return item.data.strip()
        # "+CGMM: EC25" style answers carry the value in the header
        if item.command_echo and ": " in item.raw_text:
            return item.raw_text.split(": ", 1)[1].strip()
    return None


class BootSequencer:
    """
    Runs the boot sequence through the AT protocol handler.

    Steps run one at a time, each waited on before the next is issued.
    The first failing step aborts the sequence; earlier steps are not
    rolled back.
    """

    def __init__(
        self,
        protocol: ATProtocol,
        storage: Storage = Storage.ME,
        timeout: Optional[float] = None
    ) -> None:
        """
        Initialize boot sequencer.

        Args:
            protocol: ATProtocol used for every step
            storage: Storage area selected for messages
            timeout: Per-step timeout (protocol default if None)
        """
        self.protocol = protocol
        self.timeout = timeout
        self.steps: list[tuple[str, Callable[[], str]]] = [
            ("check_ok", commands.check_ok),
            ("message_format", lambda: commands.set_message_format(MessageFormat.PDU_MODE)),
            ("error_verbosity", lambda: commands.set_error_verbosity(ErrorVerbosity.NUMERIC)),
            ("echo", lambda: commands.set_echo(False)),
            ("storage", lambda: commands.set_preferred_storage(storage)),
        ]

    def boot(self) -> BootReport:
        """
        Run the configuration steps, then read identity.

        Returns:
            BootReport with completed steps and identity fields

        Raises:
            BootError: If a configuration step fails (carries step and cause)
        """
        report = BootReport()

        for name, render in self.steps:
            command = render()
            logger.info(f"Boot step '{name}': {command.strip()}")
            response, error = self.protocol.send(command, timeout=self.timeout)
            if error is not None:
                logger.error(f"Boot step '{name}' failed: {error}")
                raise BootError(name, error)
            report.steps.append(name)

        report.module_id = self._read_identity("module_id", commands.get_module_id())
        report.device_id = self._read_identity("device_id", commands.get_device_id())

        logger.info(f"Boot complete: module={report.module_id}, device={report.device_id}")
        return report

    def _read_identity(self, field: str, command: str) -> Optional[str]:
        """Identity read failures are not fatal."""
        response, error = self.protocol.send(command, timeout=self.timeout)
        if error is not None:
            logger.warning(f"Could not read {field}: {error}")
            return None

        value = _first_value(response)
        if value is None:
            logger.warning(f"Empty {field} response: {response.raw_text!r}")
        return value
