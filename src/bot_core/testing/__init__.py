"""In-memory fakes for exercising the bot without a server or AI service."""
