"""
Upstream service names and directory constants.
"""

from enum import Enum


class ServiceDomain(str, Enum):
    """Logical service names understood by the upstream directory (CSDS)."""

    # Account configuration
    ACCOUNT_CONFIG_READ = "accountConfigReadOnly"
    ACCOUNT_CONFIG_WRITE = "accountConfigReadWrite"

    # Messaging and history
    MSG_HIST = "msgHist"
    ENG_HIST = "engHistDomain"
    ASYNC_MESSAGING = "asyncMessagingEnt"

    # Agent and operations
    AGENT_VEP = "agentVep"
    AGENT_MANAGER = "agentManagerWorkspace"
    AGENT_ACTIVITY = "agentActivityDomain"
    LE_DATA_REPORTING = "leDataReporting"

    SENTINEL = "sentinel"
    APP_KEY_MANAGEMENT = "appKeyManagement"

    # Conversation Builder / AI (derived, see derivation.py)
    CB_SSO = "convBuild"
    CB_MGMT = "bcmgmt"
    CB_INTG = "bcintg"
    CB_NLU = "bcnlu"
    AI_STUDIO = "aistudio"
    BOT = "bot"
    BOT_PLATFORM = "botPlatform"
    BOT_LOGS = "botlogs"
    KB = "kb"
    CONTEXT = "context"
    RECOMMENDATION = "recommendation"

    # Proactive messaging (derived)
    PROACTIVE = "proactive"
    PROACTIVE_HANDOFF = "proactiveHandoff"

    PROMPT_LIBRARY = "promptlibrary"
    FAAS_UI = "faasUI"


# The directory row whose host carries the account's region code.
REGION_BEARING_SERVICE = ServiceDomain.ASYNC_MESSAGING.value

DIRECTORY_PATH = "/api/account/{tenant_id}/service/baseURI.json"
DIRECTORY_API_VERSION = "1.0"

CACHE_PREFIX_DIRECTORY = "csds:directory:"
CACHE_PREFIX_REGION = "csds:region:"
DEFAULT_DIRECTORY_TTL = 3600  # seconds
