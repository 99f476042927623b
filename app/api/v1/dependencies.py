"""
API dependencies
"""

from fastapi import Request

from app.utils.logger import PaymentLogger


def get_payment_logger(request: Request) -> PaymentLogger:
    """The process-wide logger created by create_app"""
    return request.app.state.logger
