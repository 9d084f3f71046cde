"""
Per-request access to the map core. Collections are loaded fresh from the
store for every request, like the client did on every screen.
"""
from flask import current_app, g
from flask_jwt_extended import get_jwt_identity

from pss_map.errors import AuthorizationError
from pss_map.plans import PlanCatalog
from pss_map.repository import ResourceRepository
from pss_map.settings import load_settings
from pss_map.stores import HttpBlobStore, LocalBlobStore
from pss_map.users import UserDirectory
from .persistence import SqlResourceStore


def get_store():
    if 'store' not in g:
        g.store = SqlResourceStore()
    return g.store


def plan_sizes():
    return current_app.config['STADIUM_PLANS']


def get_repository():
    if 'repository' not in g:
        g.repository = ResourceRepository(get_store(), len(plan_sizes())).load()
    return g.repository


def get_directory():
    if 'directory' not in g:
        g.directory = UserDirectory(get_store()).load()
    return g.directory


def get_catalog():
    if 'catalog' not in g:
        g.catalog = PlanCatalog(get_store(), plan_sizes()).load()
    return g.catalog


def get_settings():
    return load_settings(get_store())


def blob_stores():
    stores = []
    upload_url = current_app.config.get('BLOB_UPLOAD_URL')
    if upload_url:
        stores.append(HttpBlobStore(upload_url, current_app.config.get('BLOB_PUBLIC_URL')))
    stores.append(LocalBlobStore(current_app.config['BLOB_ROOT']))
    return stores


def current_user():
    """The user behind the JWT, looked up again so deleted accounts lose access."""
    username = get_jwt_identity()
    user = get_directory().get(username)
    if user is None:
        raise AuthorizationError(f"user '{username}' no longer exists")
    return user


def current_actor():
    return current_user().actor
