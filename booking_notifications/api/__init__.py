"""Operations API (FastAPI). Run with: python -m booking_notifications.api.main"""
