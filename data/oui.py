"""
Access point hardware vendors by OUI (first three octets of the BSSID).

Lists the vendors that change an assessment: attack tools built to run
rogue access points, adapters common in penetration testing, and
placeholder prefixes that shipping hardware never uses. Mainstream
router and enterprise vendors are listed so lookups can name them.
"""

from __future__ import annotations


# =============================================================================
# Vendor types
# =============================================================================

VENDOR_ROUTER = 'router'
VENDOR_ENTERPRISE = 'enterprise'
VENDOR_ISP = 'isp'
VENDOR_MOBILE = 'mobile'
VENDOR_PENTEST = 'pentest'
VENDOR_PLACEHOLDER = 'placeholder'
VENDOR_ATTACK_TOOL = 'attack_tool'

# Vendor types that count against a network
SUSPICIOUS_VENDOR_TYPES = frozenset({VENDOR_PENTEST, VENDOR_PLACEHOLDER, VENDOR_ATTACK_TOOL})


# =============================================================================
# OUI table
# =============================================================================

OUI_DATABASE = {
    # Consumer routers
    '00:1F:3F': {'vendor': 'NETGEAR', 'type': VENDOR_ROUTER},
    '00:26:B8': {'vendor': 'NETGEAR', 'type': VENDOR_ROUTER},
    '00:1B:2F': {'vendor': 'TP-Link', 'type': VENDOR_ROUTER},
    'AC:84:C6': {'vendor': 'TP-Link', 'type': VENDOR_ROUTER},
    '00:50:7F': {'vendor': 'D-Link', 'type': VENDOR_ROUTER},
    '00:23:CD': {'vendor': 'Linksys', 'type': VENDOR_ROUTER},
    '68:7F:74': {'vendor': 'Linksys', 'type': VENDOR_ROUTER},

    # Enterprise access points
    '00:1B:67': {'vendor': 'Cisco', 'type': VENDOR_ENTERPRISE},
    'B4:A9:5A': {'vendor': 'Cisco', 'type': VENDOR_ENTERPRISE},
    '00:0B:86': {'vendor': 'Aruba Networks', 'type': VENDOR_ENTERPRISE},
    '6C:F3:7F': {'vendor': 'Aruba Networks', 'type': VENDOR_ENTERPRISE},
    '04:18:D6': {'vendor': 'Ubiquiti', 'type': VENDOR_ENTERPRISE},
    '00:09:0F': {'vendor': 'Fortinet', 'type': VENDOR_ENTERPRISE},

    # ISP customer equipment
    '00:A0:C5': {'vendor': 'ZyXEL', 'type': VENDOR_ISP},
    'F8:8E:85': {'vendor': 'ZyXEL', 'type': VENDOR_ISP},
    '00:26:62': {'vendor': 'Arcadyan', 'type': VENDOR_ISP},
    'F4:28:53': {'vendor': 'ZTE', 'type': VENDOR_ISP},

    # Phone hotspots
    '3C:07:71': {'vendor': 'Apple', 'type': VENDOR_MOBILE},
    '28:E0:2C': {'vendor': 'Samsung', 'type': VENDOR_MOBILE},

    # Penetration testing adapters
    '00:C0:CA': {'vendor': 'Alfa Network', 'type': VENDOR_PENTEST},

    # Placeholder prefixes
    '00:00:00': {'vendor': 'Invalid/Test', 'type': VENDOR_PLACEHOLDER},
    '12:34:56': {'vendor': 'Default/Test', 'type': VENDOR_PLACEHOLDER},

    # Rogue access point hardware
    '00:13:37': {'vendor': 'Hak5 WiFi Pineapple', 'type': VENDOR_ATTACK_TOOL},
}


def get_vendor_info(bssid: str | None) -> dict | None:
    """Get vendor information for a canonical BSSID."""
    if not bssid or len(bssid) < 8:
        return None
    info = OUI_DATABASE.get(bssid[:8].upper())
    if info is None:
        return None
    return {'oui': bssid[:8].upper(), **info}


def is_suspicious_vendor(bssid: str | None) -> bool:
    """Check if the BSSID belongs to attack, pentest or placeholder hardware."""
    info = get_vendor_info(bssid)
    return info is not None and info['type'] in SUSPICIOUS_VENDOR_TYPES
