from otpauth.db.models.account import Account

__all__ = ["Account"]
