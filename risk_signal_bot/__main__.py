import sys

from risk_signal_bot.daemon import main

sys.exit(main())
