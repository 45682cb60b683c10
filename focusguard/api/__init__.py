# API module
# Transports are imported from their own modules; keeping this package
# import-free lets services depend on api.serialization without cycles.
