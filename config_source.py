"""
config_source.py — Pull the running config from a live legacy switch.

Alternative to pasting the config or loading it from a file: SSH in with
Netmiko, run 'show running-config', hand the text to the sectioner.
"""

import asyncio
import logging

from netmiko import ConnectHandler, NetmikoTimeoutException, NetmikoAuthenticationException
from models import DeviceRequest

logger = logging.getLogger(__name__)


class ConfigFetchError(Exception):
    def __init__(self, host: str, message: str):
        self.host = host
        self.message = message
        super().__init__(f"{host}: {message}")


class ConfigFetcher:
    def __init__(self, req: DeviceRequest):
        self.req  = req
        self.conn = None

    def _connect(self):
        return ConnectHandler(
            device_type="cisco_ios",
            host=self.req.host,
            username=self.req.username,
            password=self.req.password,
            port=self.req.port,
            secret=self.req.secret or self.req.password,
            timeout=30,
            auth_timeout=20,
            fast_cli=False,
        )

    def _get_running_config(self) -> str:
        if self.req.secret:
            self.conn.enable()
        return self.conn.send_command("show running-config", read_timeout=60)

    async def fetch(self) -> str:
        loop = asyncio.get_event_loop()
        logger.info("Fetching running-config from %s:%s", self.req.host, self.req.port)
        try:
            self.conn = await loop.run_in_executor(None, self._connect)
        except NetmikoAuthenticationException:
            raise ConfigFetchError(self.req.host, "SSH authentication failed — check credentials")
        except NetmikoTimeoutException:
            raise ConfigFetchError(self.req.host, f"SSH connection timed out on port {self.req.port}")

        try:
            cfg = await loop.run_in_executor(None, self._get_running_config)
        finally:
            self.conn.disconnect()

        logger.info("Fetched %d line(s) from %s", len(cfg.splitlines()), self.req.host)
        return cfg
