"""netcheck launcher: runs the observer, a prober agent, or both in one event loop.

Usage: python -m netcheck.launcher [observer|prober|all] [config.json]
"""

import asyncio
import signal
import sys

from netcheck.observer.service import ObserverService
from netcheck.prober.agent import ProbeAgent
from netcheck.shared.base_service import BaseService
from netcheck.shared.config import (
    OBSERVER_DEFAULTS,
    OBSERVER_ENV,
    PROBER_DEFAULTS,
    PROBER_ENV,
    apply_env_overrides,
    load_config,
)
from netcheck.shared.logger import get_logger

logger = get_logger("launcher")

ROLE_REGISTRY = {
    "observer": (ObserverService, OBSERVER_DEFAULTS, OBSERVER_ENV),
    "prober":   (ProbeAgent,      PROBER_DEFAULTS,   PROBER_ENV),
}


class Launcher:
    """Run a set of services until a shutdown signal arrives."""

    def __init__(self, services: list[BaseService]):
        self._services = list(services)
        self._tasks: list[asyncio.Task] = []
        self._shutdown_event = asyncio.Event()

    @classmethod
    def from_roles(cls, roles: list[str], config_path: str | None = None) -> "Launcher":
        """Build services by role name.

        The config file may hold one section per role (``{"observer": {...}}``).
        A file without role sections configures the single requested role.
        Environment variables override file values either way.
        """
        file_config = load_config(config_path) if config_path else {}
        sectioned = any(role in file_config for role in ROLE_REGISTRY)
        if file_config and not sectioned and len(roles) > 1:
            logger.warning(f"{config_path} has no role sections, ignoring it for roles {roles}")

        services = []
        for role in roles:
            if role not in ROLE_REGISTRY:
                logger.warning(f"Unknown role: {role}, skipping")
                continue
            service_cls, defaults, env_mapping = ROLE_REGISTRY[role]
            if sectioned:
                overrides = file_config.get(role) or {}
            elif len(roles) == 1:
                overrides = file_config
            else:
                overrides = {}
            config = apply_env_overrides({**defaults, **overrides}, env_mapping)
            services.append(service_cls(config=config))
        return cls(services)

    @property
    def services(self) -> list[BaseService]:
        return list(self._services)

    async def start(self):
        """Start all services, block until a shutdown signal or until they all exit."""
        self._install_signal_handlers()
        for service in self._services:
            self._tasks.append(asyncio.create_task(service.start()))
        logger.info(f"Launched {len(self._services)} services")

        waiter = asyncio.create_task(self._shutdown_event.wait())
        await asyncio.wait([waiter, *self._tasks], return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()
        await self.stop()

    def request_shutdown(self):
        self._shutdown_event.set()

    async def stop(self):
        """Stop all services gracefully."""
        logger.info("Shutting down all services...")
        for service in self._services:
            try:
                await service.stop()
            except Exception as e:
                logger.error(f"Error stopping {service.name}: {e}")
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for service, result in zip(self._services, results):
            if isinstance(result, Exception):
                logger.error(f"Service {service.name} exited with error: {result}")
        self._tasks.clear()
        logger.info("All services stopped")

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                pass
        if sys.platform == "win32":
            signal.signal(signal.SIGINT, lambda s, f: self.request_shutdown())


def run_services(services: list[BaseService]):
    """Blocking entry point used by the per-role ``__main__`` modules."""
    launcher = Launcher(services)
    try:
        asyncio.run(launcher.start())
    except KeyboardInterrupt:
        print("\nnetcheck shutting down...")


def main():
    role = sys.argv[1] if len(sys.argv) > 1 else "all"
    config_path = sys.argv[2] if len(sys.argv) > 2 else None
    roles = list(ROLE_REGISTRY) if role == "all" else [role]

    launcher = Launcher.from_roles(roles, config_path=config_path)
    try:
        asyncio.run(launcher.start())
    except KeyboardInterrupt:
        print("\nnetcheck shutting down...")


if __name__ == "__main__":
    main()
