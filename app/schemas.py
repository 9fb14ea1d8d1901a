"""Schemas for API requests and responses."""

from __future__ import annotations

from marshmallow import Schema, fields


class HealthStatusSchema(Schema):
    status = fields.String(required=True)
    app = fields.String()


class HealthRatesSchema(Schema):
    status = fields.String(required=True)
    ready = fields.Boolean(required=True)
    feed = fields.String(allow_none=True)
    base = fields.String(allow_none=True)
    earliest_date = fields.String(allow_none=True)
    latest_date = fields.String(allow_none=True)
    records = fields.Integer(allow_none=True)
    sync_running = fields.Boolean()
    last_success = fields.String(allow_none=True)
    last_failure = fields.String(allow_none=True)
    last_report = fields.Dict(allow_none=True)


class RatesQuerySchema(Schema):
    base = fields.String(load_default=None)
    symbols = fields.String(load_default=None)


class HistoryQuerySchema(RatesQuerySchema):
    start_at = fields.String(required=True)
    end_at = fields.String(required=True)


class RatesResponseSchema(Schema):
    base = fields.String(required=True)
    date = fields.String(required=True)
    rates = fields.Dict(keys=fields.String(), values=fields.Float(), required=True)


class HistoryResponseSchema(Schema):
    base = fields.String(required=True)
    start_at = fields.String(required=True)
    end_at = fields.String(required=True)
    rates = fields.Dict(
        keys=fields.String(),
        values=fields.Dict(keys=fields.String(), values=fields.Float()),
        required=True,
    )


class SyncResponseSchema(Schema):
    message = fields.String(required=True)
    report = fields.Dict(required=True)


class SyncThrottleSchema(Schema):
    message = fields.String(required=True)
    retry_after = fields.Integer(required=True)


class ErrorMessageSchema(Schema):
    message = fields.String(required=True)
