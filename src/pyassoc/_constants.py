"""Internal constants shared across the library."""

USER_AGENT = "pyassoc"

# ------------------------------------------------------------------
# Outbound event identifiers
# ------------------------------------------------------------------

VIN_EVENT_ID = "VIN"
ASSET_ACTIVATION_EVENT_ID = "AssetActivation"
FIRMWARE_VERSION_EVENT_ID = "FirmwareVersion"
EVENT_VERSION = "1.0"

#: VIN value used for platform generated (dummy) VIN events.
PLATFORM_GENERATED_VIN = "HCP"
VIN_TYPE_UNAVAILABLE = "UNAVAILABLE"

# ------------------------------------------------------------------
# Config push (device message service)
# ------------------------------------------------------------------

#: ``terminate_reason`` marker asking the device to wipe its data.
WIPE_DATA_REASON = "wipeData"
CONFIG_DOMAIN_WIPE_DATA = "WIPEDATA"
CONFIG_DOMAIN_DISASSOCIATION = "DISASSOCIATION"
CONFIG_COMMAND_PUT = "PUT"

# ------------------------------------------------------------------
# Device auth headers
# ------------------------------------------------------------------

HEADER_HCP_USER = "HCP-User"
HEADER_USER_ID = "user-id"

# ------------------------------------------------------------------
# Handler priorities (ascending = execution order)
# ------------------------------------------------------------------

PRIORITY_AUTH_DEACTIVATION = 10
PRIORITY_CONFIG_PUSH = 20
PRIORITY_EVENT_BUS = 30
PRIORITY_STREAM = 40

