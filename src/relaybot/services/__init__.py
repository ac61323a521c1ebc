"""Bot services: completion client, mention relay, commands and Telegram runner."""
