"""Notification services: mail, webhooks, Bark, DingTalk, Discord, Matrix and signed AWS calls."""