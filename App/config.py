import os

VARIANT_CHOICES = ('AssignChildren', 'AssignSchools')


def load_config(app, overrides):
    if os.path.exists(os.path.join('./App', 'custom_config.py')):
        app.config.from_object('App.custom_config')
    else:
        app.config.from_object('App.default_config')

    app.config.from_prefixed_env()

    for key in overrides:
        app.config[key] = overrides[key]

    variant = app.config.get('MODEL_VARIANT')
    if variant not in VARIANT_CHOICES:
        raise ValueError(
            f"MODEL_VARIANT must be one of {', '.join(VARIANT_CHOICES)}, got {variant!r}"
        )

    # Prefixed env values arrive as strings or JSON scalars; normalise the solver knobs
    time_limit = app.config.get('SOLVER_TIME_LIMIT')
    app.config['SOLVER_TIME_LIMIT'] = int(time_limit) if time_limit not in (None, '') else None
    gap = app.config.get('SOLVER_GAP')
    app.config['SOLVER_GAP'] = float(gap) if gap not in (None, '') else None
    threads = app.config.get('SOLVER_THREADS')
    app.config['SOLVER_THREADS'] = int(threads) if threads not in (None, '') else None

    origins = app.config.get('CORS_ORIGINS') or []
    if isinstance(origins, str):
        origins = [origin.strip() for origin in origins.split(',') if origin.strip()]
    app.config['CORS_ORIGINS'] = origins
