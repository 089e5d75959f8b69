import os

SERVICE_NAME = 'school-visit-planner'
ENV = os.environ.get('ENV', 'development')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-change-me')

# Optimisation defaults
MODEL_VARIANT = 'AssignChildren'
SOLVER_TIME_LIMIT = 60
SOLVER_GAP = None
SOLVER_THREADS = None
LOG_SOLVER_OUTPUT = False

CORS_ORIGINS = [
    'http://localhost:3000',
    'http://127.0.0.1:3000',
]
