from dt_core.screening.signals import notifications  # noqa: F401
