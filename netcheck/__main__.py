"""python -m netcheck [observer|prober|all] [config.json]"""

from netcheck.launcher import main

if __name__ == "__main__":
    main()
