import os


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///turntracker.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # 'sql' persists through SQLAlchemy; 'memory' keeps everything in-process
    TURNTRACKER_STORE = os.environ.get('TURNTRACKER_STORE', 'sql')
    # Web Push (VAPID). Override both keys outside local development.
    PUSH_ENABLED = _env_flag('PUSH_ENABLED', True)
    VAPID_PUBLIC_KEY = os.environ.get(
        'VAPID_PUBLIC_KEY',
        'BM3n1VFf0PJCCU74S7JlPMNEJHWigVlkfzrP56tUJnmC0L9_QfK3Ux3hGQO2-9hKz5_kOSWZFmsTPCFSFkDnR3g',
    )
    VAPID_PRIVATE_KEY = os.environ.get('VAPID_PRIVATE_KEY', 'c5Gu8YS4bCQnhwkuMI7CwyN_S9mVC0D7K-ZZFN9MVxQ')
    VAPID_SUBJECT = os.environ.get('VAPID_SUBJECT', 'mailto:test@example.com')
    # How long the push service should hold an undelivered message (sec)
    PUSH_TTL_SEC = int(os.environ.get('PUSH_TTL_SEC', '86400'))
    CORS_ORIGINS = os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5000,http://127.0.0.1:5000',
    ).split(',')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
