"""Slack integration for the GenMedia bot.

WHY: The team lives in Slack; commands arrive there and the generated
media should land back in the same thread.

HOW: The bot runs as a Socket Mode process (slack-bolt AsyncApp). It
adapts Slack messages to the core Conversation/StatusMessage interface
and hands them to the CommandDispatcher.

RULES:
- Socket Mode requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN
- The bot needs chat:write, files:write and channels:history scopes
"""
