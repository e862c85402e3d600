"""documents/ -- Owned resources (document metadata) for DocKeep.

Every document carries owner_id, a reference to a credential record. Access
decisions come from auth.ownership (called by documents/service.py); the
store itself never checks permissions.

Layer rule: documents/ may import from core/ and auth/ (models, ownership),
never from api/.
"""
