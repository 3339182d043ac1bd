import sys

from asset_archiver.application.cli import main

if __name__ == "__main__":
    sys.exit(main())
