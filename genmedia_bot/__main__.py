"""Package entry point for ``python -m genmedia_bot``.

WHY: Operators start the Slack bot with ``python -m genmedia_bot --slack``
and run one-off generations with ``python -m genmedia_bot imagen "..."``.

HOW: Checks sys.argv for the ``--slack`` flag. If present, starts the
Socket Mode bot. Otherwise, delegates to the CLI's main() function.
"""

import sys

if __name__ == "__main__":
    if "--slack" in sys.argv:
        from genmedia_bot.slack.bot import main as bot_main
        bot_main()
    else:
        from genmedia_bot.cli import main
        main()
