import sys

from docker_logs.cli import main

if __name__ == "__main__":
    sys.exit(main())
