"""Schema definitions for request/response validation."""
from marshmallow import Schema, fields, validate, EXCLUDE


class ImportRequestSchema(Schema):
    """Schema for product and consultant import requests. The body is optional."""
    class Meta:
        unknown = EXCLUDE

    dry_run = fields.Boolean(data_key='dryRun', load_default=False)
    resume = fields.Boolean(load_default=False)


class MatchRequestSchema(Schema):
    """Schema for product matching requests; previews by default."""
    class Meta:
        unknown = EXCLUDE

    dry_run = fields.Boolean(data_key='dryRun', load_default=True)


class SyncLogSchema(Schema):
    """Schema for sync log responses."""
    id = fields.Integer(required=True)
    sync_type = fields.String(required=True)
    status = fields.String(required=True)
    records_synced = fields.Integer()
    records_failed = fields.Integer()
    error_message = fields.String(allow_none=True)
    meta_data = fields.Dict(data_key='metadata', allow_none=True)
    started_at = fields.DateTime()
    completed_at = fields.DateTime(allow_none=True)


class ConsultantMatchRequestSchema(Schema):
    """Schema for consultant matching requests; links immediately by default."""
    class Meta:
        unknown = EXCLUDE

    dry_run = fields.Boolean(data_key='dryRun', load_default=False)


class ConsultantPhotoRequestSchema(Schema):
    """Schema for consultant photo import requests."""
    class Meta:
        unknown = EXCLUDE

    limit = fields.Integer(load_default=50, validate=validate.Range(min=1, max=500))
    after_id = fields.Integer(data_key='afterId', load_default=None, allow_none=True)
    force_update = fields.Boolean(data_key='forceUpdate', load_default=False)
