# Signaling protocol constants (envelope kinds, field names, phases)

# Envelope discriminator field
K_TYPE = "type"

# Inbound kinds
T_JOIN = "join"
T_MESSAGE = "message"
T_CANDIDATE = "candidate"
T_BYE = "bye"

# Outbound kinds
T_CREATED = "created"
T_JOINED = "joined"
T_READY = "ready"
T_ROOM_INFO = "roomInfo"
T_ERROR = "error"

# Inbound field names
F_USER_ID = "userId"
F_REMOTE_ID = "remoteId"
F_DATA = "data"
F_CANDIDATE = "candidate"

# Outbound field names
F_ROOM = "room"
F_USERS = "users"
F_USER_COUNT = "userCount"
F_FROM = "from"
F_ID = "id"
F_MESSAGE = "message"

ROOM_PREFIX = "room_"
ROOM_CAPACITY = 2

# Session phases
PHASE_UNJOINED = "unjoined"
PHASE_INITIATOR = "initiator"
PHASE_JOINED = "joined"
PHASE_LEFT = "left"

# Error texts delivered to the offending session
ERR_MISSING_PARAMS = "Missing required parameters: userId and remoteId are required"
ERR_SELF_CONNECTION = "User cannot connect to themselves"
ERR_REPLACED = "You have been disconnected due to a new connection from your account"
ERR_ROOM_FULL = "Room is full"

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008

CLOSE_REASON_REPLACED = "replaced by a new connection"
CLOSE_REASON_SELF = "cannot connect to self"
CLOSE_REASON_SHUTDOWN = "Server shutting down"

HEALTH_TEXT = "WebRTC Signaling Server Running"
