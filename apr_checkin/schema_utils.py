import jsonschema


NONCE_SCHEMA = {
	"type": "object",
	"properties": {
		"nonce": {"type": "string"},
		"message": {"type": "string"},
	},
	"required": ["nonce"],
}

LOGIN_SCHEMA = {
	"type": "object",
	"properties": {
		"access_token": {"type": "string", "minLength": 1},
		"user": {
			"type": "object",
			"properties": {"id": {"type": ["string", "integer"]}},
			"required": ["id"],
		},
	},
	"required": ["access_token", "user"],
}

# Timestamps come back either as numbers or as numeric strings.
_TIMESTAMP = {"type": ["integer", "string", "null"]}

WALLET_STATUS_SCHEMA = {
	"type": "object",
	"properties": {
		"checkInCount": {"type": ["integer", "null"]},
		"points": {"type": ["number", "string", "null"]},
		"userTransactionCount": {"type": ["integer", "null"]},
		"lastCheckinTime": _TIMESTAMP,
	},
}

CHECKIN_SCHEMA = {
	"type": "object",
	"properties": {
		"message": {"type": "string"},
		"checkintimes": {"type": ["integer", "null"]},
		"lastCheckinTime": _TIMESTAMP,
	},
}

# Quest data is shown as-is; the service has returned both shapes.
QUESTS_SCHEMA = {"type": ["object", "array"]}


def validate_schema(payload, schema):
	"""Validate payload against JSON schema.

	Returns True if valid; raises jsonschema.ValidationError otherwise.
	"""
	jsonschema.validate(instance=payload, schema=schema)
	return True
