import sys

from apr_checkin.checkin import main

if __name__ == "__main__":
    sys.exit(main())
