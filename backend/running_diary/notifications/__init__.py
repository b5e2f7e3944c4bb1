"""Transactional email: templates, SMTP mailer, dispatcher and retry outbox."""
