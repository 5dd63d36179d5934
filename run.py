import sys

from tics_review.main import main


if __name__ == "__main__":
    sys.exit(main())
