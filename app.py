"""
Development server entry point
"""
import atexit
import os

from gdpr_checker import EXTENSION_KEY, create_app

app = create_app(os.getenv('FLASK_ENV', 'development'))
atexit.register(app.extensions[EXTENSION_KEY].shutdown, False)


if __name__ == '__main__':
    app.logger.info('GDPR Compliance Checker API listening on port %s', app.config['PORT'])
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=app.config.get('DEBUG', False))
