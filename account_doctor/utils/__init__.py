from account_doctor.utils.retry import call_with_retry

__all__ = ["call_with_retry"]
