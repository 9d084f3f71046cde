import os
import sys

from pss_backend.app import create_app
from pss_backend.services import get_directory

password = sys.argv[1] if len(sys.argv) > 1 else os.environ.get('PSS_ADMIN_PASSWORD', 'admin123')

app = create_app()

with app.app_context():
    print(f"Targeting DB: {app.config['SQLALCHEMY_DATABASE_URI']}")
    directory = get_directory()

    admin = directory.get('admin')
    if admin is None:
        print("Creating admin user...")
        directory.add('admin', password, 'admin')
    else:
        print("Found admin user.")
        directory.set_password('admin', password)

    print(f"Total Users: {len(directory.all())}")
    print("SUCCESS: Password for 'admin' has been reset")
