"""Community messaging core: conversations, messages, presence and notifications."""
