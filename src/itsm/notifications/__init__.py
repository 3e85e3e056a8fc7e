"""
Notifications Module
====================

Routes outbound ticket notifications to the right email account and posts
them to Slack.

Structure:
- domain/: EmailAccount, NotificationMapping, NotificationRouter, TicketNotification
- application/: Settings management, dispatcher, DTOs
- infrastructure/: ORM models, repository, SMTP sender, Slack client
- interfaces/: FastAPI controllers
"""
