import logging
import os

admin_logger = logging.getLogger('admin_actions')
crime_logger = logging.getLogger('crimes')


def configure_loggers(app):
    admin_logger.setLevel(logging.INFO)
    crime_logger.setLevel(logging.INFO)
    logging.getLogger('flask_limiter').setLevel(logging.ERROR)

    log_file = app.config.get('ADMIN_LOG_FILE')
    if not log_file:
        return
    log_path = os.path.abspath(log_file)
    for handler in admin_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_path:
            return
    fh = logging.FileHandler(log_path)
    fh.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
    admin_logger.addHandler(fh)
