from app.routers import academic_calendar, folders, recent_access, schedules

__all__ = [
    'academic_calendar',
    'folders',
    'recent_access',
    'schedules',
]
