"""Services for Kob Git Updater."""
