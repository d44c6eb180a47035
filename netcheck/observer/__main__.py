"""Run the observer: python -m netcheck.observer [config.json]"""

import sys

from netcheck.launcher import run_services
from netcheck.observer.service import ObserverService


def main():
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    observer = ObserverService(config_path=config_path)
    run_services([observer])


if __name__ == "__main__":
    main()
