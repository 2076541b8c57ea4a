"""
Modbus TCP Slave Server
=======================

Modbus/TCP server exposing the capture rig's register map.

The server runs in its own thread with a private event loop; the
simulation loop reads and writes the data blocks through the
thread-safe accessors below.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import asyncio
import threading
import time
import logging
from typing import Dict, Optional, Union
from dataclasses import dataclass
from contextlib import suppress

# Modern pymodbus 3.x imports
from pymodbus import ModbusDeviceIdentification
from pymodbus.server import StartAsyncTcpServer, ServerAsyncStop
from pymodbus.datastore import (
    ModbusSequentialDataBlock,
    ModbusDeviceContext,
    ModbusServerContext,
)

from .register_map import ModbusRegisterMap, RegisterDefinition, RegisterType
from .protocols import ModbusEncoder, ModbusDecoder

logger = logging.getLogger(__name__)


@dataclass
class ModbusServerConfig:
    """Configuration for Modbus TCP server."""

    host: str = "127.0.0.1"
    port: int = 5020
    unit_id: int = 1

    # Server identification
    vendor_name: str = "DAC Rig Simulator"
    product_code: str = "DAC-150"
    product_name: str = "Closed-Loop Capture Rig Simulator"
    model_name: str = "Virtual Rig Controller"
    version: str = "1.0.0"

    # Timeouts
    startup_timeout_sec: float = 5.0
    shutdown_timeout_sec: float = 3.0

    def validate(self) -> None:
        if not 0 < self.port <= 65535:
            raise ValueError(f"Port {self.port} out of range")
        if not 0 <= self.unit_id <= 247:
            raise ValueError(f"Unit id {self.unit_id} out of range [0, 247]")


class ModbusSlave:
    """
    Modbus TCP slave serving the capture rig register map.

    The server is created inside its own event loop (pymodbus 3.x
    requires the server to be constructed within the running loop).
    """

    def __init__(
        self,
        register_map: Optional[ModbusRegisterMap] = None,
        config: Optional[ModbusServerConfig] = None,
    ):
        self.register_map = register_map or ModbusRegisterMap()
        self.config = config or ModbusServerConfig()
        self.config.validate()

        self.encoder = ModbusEncoder()
        self.decoder = ModbusDecoder()

        self._blocks: Dict[RegisterType, ModbusSequentialDataBlock] = {
            register_type: ModbusSequentialDataBlock(
                0, [0] * self.register_map.block_size(register_type)
            )
            for register_type in RegisterType
        }

        device_context = ModbusDeviceContext(
            di=self._blocks[RegisterType.DISCRETE_INPUT],
            co=self._blocks[RegisterType.COIL],
            hr=self._blocks[RegisterType.HOLDING_REGISTER],
            ir=self._blocks[RegisterType.INPUT_REGISTER],
        )
        self.context = ModbusServerContext(
            devices={self.config.unit_id: device_context}, single=False
        )

        self.identity = ModbusDeviceIdentification()
        self.identity.VendorName = self.config.vendor_name
        self.identity.ProductCode = self.config.product_code
        self.identity.ProductName = self.config.product_name
        self.identity.ModelName = self.config.model_name
        self.identity.MajorMinorRevision = self.config.version

        # Lifecycle management
        self.server_thread: Optional[threading.Thread] = None
        self._event_loop: Optional[asyncio.AbstractEventLoop] = None

        # Synchronization
        self._lock = threading.RLock()
        self._running = threading.Event()
        self._server_ready = threading.Event()
        self._shutdown_requested = threading.Event()

        logger.info(
            f"Modbus slave initialized: {self.config.host}:{self.config.port}, "
            f"unit_id={self.config.unit_id}"
        )

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def _lookup(self, name: str, register_type: RegisterType) -> RegisterDefinition:
        reg = self.register_map.get_register_by_name(name)
        if reg is None or reg.register_type != register_type:
            raise ValueError(f"Invalid {register_type.name.lower()} reference: {name}")
        return reg

    def _write(self, name: str, register_type: RegisterType, value: Union[float, bool]):
        reg = self._lookup(name, register_type)
        if reg.data_type != "bool" and not (-1e9 <= value <= 1e9):
            raise ValueError(f"Value for {name} out of range: {value}")
        words = self.encoder.encode(value, reg.data_type)
        with self._lock:
            self._blocks[register_type].setValues(reg.address, words)

    def _read(self, name: str, register_type: RegisterType) -> Union[float, int, bool]:
        reg = self._lookup(name, register_type)
        with self._lock:
            words = self._blocks[register_type].getValues(reg.address, reg.size_words)
        return self.decoder.decode(words, reg.data_type)

    def update_input_register(self, name: str, value: float):
        """Publish a telemetry value (thread-safe)."""
        self._write(name, RegisterType.INPUT_REGISTER, value)

    def update_discrete_input(self, name: str, value: bool):
        """Publish a fault bit (thread-safe)."""
        self._write(name, RegisterType.DISCRETE_INPUT, value)

    def write_holding_register(self, name: str, value: float):
        """Seed a parameter register (thread-safe)."""
        self._write(name, RegisterType.HOLDING_REGISTER, value)

    def read_holding_register(self, name: str) -> float:
        return self._read(name, RegisterType.HOLDING_REGISTER)

    def write_coil(self, name: str, value: bool):
        self._write(name, RegisterType.COIL, value)

    def read_coil(self, name: str) -> bool:
        return self._read(name, RegisterType.COIL)

    def read_input_register(self, name: str) -> float:
        return self._read(name, RegisterType.INPUT_REGISTER)

    def get_all_holding_registers(self) -> Dict[str, float]:
        return {reg.name: self.read_holding_register(reg.name) for reg in self.register_map.holding_registers}

    def get_all_coils(self) -> Dict[str, bool]:
        return {reg.name: self.read_coil(reg.name) for reg in self.register_map.coils}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, blocking: bool = True):
        """
        Start Modbus server.

        Args:
            blocking: If True, block until server stops
                     If False, run in background thread

        Raises:
            RuntimeError: If the background server does not come up in time
        """
        if self._running.is_set():
            logger.warning("Modbus server already running")
            return

        self._running.set()
        self._server_ready.clear()
        self._shutdown_requested.clear()

        if blocking:
            self._run_server()
            return

        self.server_thread = threading.Thread(
            target=self._run_server, daemon=True, name="ModbusTCPServer"
        )
        self.server_thread.start()

        if not self._server_ready.wait(timeout=self.config.startup_timeout_sec):
            self._running.clear()
            raise RuntimeError("Server startup timeout")

        if not self._running.is_set():
            raise RuntimeError("Server failed to start")

        logger.info(f"Modbus server started on {self.config.host}:{self.config.port}")

    def _run_server(self):
        loop = None
        try:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._event_loop = loop
            loop.run_until_complete(self._async_run_server())

        except Exception as e:
            logger.error(f"Modbus server error: {type(e).__name__}: {e}")
            self._running.clear()

        finally:
            # Signal ready even on error (to unblock waiting threads)
            self._server_ready.set()

            if loop and not loop.is_closed():
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                with suppress(Exception):
                    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
                loop.close()

            self._event_loop = None

    async def _async_run_server(self):
        server_task = asyncio.ensure_future(
            StartAsyncTcpServer(
                context=self.context,
                identity=self.identity,
                address=(self.config.host, self.config.port),
            )
        )
        try:
            # Give the listener a moment to bind or fail
            await asyncio.sleep(0.2)
            if server_task.done():
                server_task.result()
            self._server_ready.set()

            while not self._shutdown_requested.is_set():
                await asyncio.sleep(0.1)
        finally:
            with suppress(Exception):
                await ServerAsyncStop()
            server_task.cancel()

    def stop(self):
        """Stop Modbus server (graceful shutdown)."""
        if not self._running.is_set():
            return

        self._shutdown_requested.set()
        self._running.clear()

        if self.server_thread and self.server_thread.is_alive():
            self.server_thread.join(timeout=self.config.shutdown_timeout_sec)
            if self.server_thread.is_alive():
                logger.warning("Server thread did not terminate cleanly")

        logger.info("Modbus server stopped")

    @property
    def is_running(self) -> bool:
        return self._running.is_set()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    slave = ModbusSlave(config=ModbusServerConfig(host="127.0.0.1", port=5020))
    slave.write_holding_register("fan_flow_rate", 20.0)
    slave.update_input_register("current_ppm", 420.0)

    print("Starting Modbus server on 127.0.0.1:5020")
    print("Press Ctrl+C to stop")
    try:
        slave.start(blocking=False)
        while slave.is_running:
            time.sleep(1.0)
    except RuntimeError as e:
        print(f"Failed to start: {e}")
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        slave.stop()
