"""Run a prober agent: python -m netcheck.prober [config.json]"""

import sys

from netcheck.launcher import run_services
from netcheck.prober.agent import ProbeAgent


def main():
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    agent = ProbeAgent(config_path=config_path)
    run_services([agent])


if __name__ == "__main__":
    main()
