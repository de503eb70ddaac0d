"""
API Routers

One APIRouter per resource, mounted by ``ghorer_khabar.main``.
"""
