import sys

from review_app_action.cli import main


if __name__ == "__main__":
    sys.exit(main())
