import sys

from safer_scraper.run import main

sys.exit(main())
