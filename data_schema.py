"""
Data Schema Definition - Single Source of Truth
Maps logical field names to the JSON keys stored in a household snapshot
"""

from typing import Any, Dict, List, Optional

# Schema version for migration tracking
SCHEMA_VERSION = "1.0.0"

# Field mappings: logical_name -> json_key
SCHEMA = {
    'position': {
        'id': 'id',
        'ticker': 'ticker',
        'shares': 'shares',
        'cost_basis': 'costBasis',
        'date_acquired': 'dateAcquired'
    },
    'call': {
        'id': 'id',
        'ticker': 'ticker',
        'strike': 'strike',
        'premium_per_share': 'premium',
        'contracts': 'contracts',
        'date_opened': 'dateOpened',
        'expiration': 'expiration',
        'status': 'status',
        'date_closed': 'dateClosed',
        'close_price': 'closePrice',
        'total_premium': 'totalPremium',
        'total_close_cost': 'totalCloseCost',
        'current_price': 'currentPrice'
    },
    'watchlist': {
        'id': 'id',
        'ticker': 'ticker',
        'sector': 'sector',
        'iv_rank': 'ivRank',
        'current_iv': 'currentIV',
        'notes': 'notes'
    },
    'event': {
        'id': 'id',
        'ticker': 'ticker',
        'event_type': 'type',
        'date': 'date',
        'description': 'description'
    },
    'snapshot': {
        'positions': 'positions',
        'calls': 'calls',
        'watchlist': 'watchlist',
        'events': 'events',
        'next_id': 'nextId'
    }
}

# Keys every stored record must carry
REQUIRED_FIELDS = {
    'position': ['id', 'ticker', 'shares', 'cost_basis'],
    'call': ['id', 'ticker', 'strike', 'premium_per_share', 'contracts', 'status'],
    'watchlist': ['id', 'ticker'],
    'event': ['id', 'ticker', 'event_type', 'date']
}

# Field interpretations - critical for calculations
FIELD_INTERPRETATIONS = {
    'premium_per_share': {
        'description': 'Premium received per share (not per contract)',
        'calculation_note': 'Multiply by 100 to get per contract, then by contracts for total',
        'example': 'premium = 0.50 means $0.50 per share = $50 per contract'
    },
    'total_premium': {
        'description': 'Optional broker-reconciled total premium received',
        'calculation_note': 'When the key is present it supersedes premium * contracts * 100. '
                            'An explicit 0 is an override, an absent key is not.',
        'example': 'totalPremium = 187.34 after fees'
    },
    'total_close_cost': {
        'description': 'Optional broker-reconciled total cost paid to buy the call back',
        'calculation_note': 'When present it supersedes closePrice * contracts * 100 for any status.',
        'example': 'totalCloseCost = 41.66'
    },
    'close_price': {
        'description': 'Buy-to-close price per share',
        'calculation_note': 'Only used when status is closed; expired and assigned calls cost nothing to close.',
        'example': 'closePrice = 0.40 on 2 contracts = $80 close cost'
    }
}


def get_field_name(logical_name: str, category: Optional[str] = None) -> str:
    """
    Get JSON key from logical field name

    Args:
        logical_name: Logical field name (e.g., 'cost_basis')
        category: Optional record kind ('position', 'call', 'watchlist', 'event', 'snapshot')

    Returns:
        JSON key (e.g., 'costBasis')
    """
    if category:
        return SCHEMA.get(category, {}).get(logical_name, logical_name)

    # Search all categories
    for cat_schema in SCHEMA.values():
        if logical_name in cat_schema:
            return cat_schema[logical_name]

    return logical_name


def get_logical_name(json_key: str, category: Optional[str] = None) -> Optional[str]:
    """
    Get logical field name from JSON key

    Returns:
        Logical field name or None if not found
    """
    categories = [category] if category else list(SCHEMA.keys())
    for cat in categories:
        for logical, key in SCHEMA.get(cat, {}).items():
            if key == json_key:
                return logical
    return None


def known_keys(category: str) -> List[str]:
    """JSON keys owned by the schema for a record kind"""
    return list(SCHEMA.get(category, {}).values())


def _amount_errors(record: Dict[str, Any], label: str) -> List[str]:
    """Non-numeric money fields on a call, described by their interpretation"""
    errors = []
    for logical in FIELD_INTERPRETATIONS:
        field = get_field_name(logical, 'call')
        value = record.get(field)
        if value is None or value == "":
            continue
        try:
            float(value)
        except (TypeError, ValueError):
            description = get_field_interpretation(logical)['description']
            errors.append(f"{label} '{field}' must be a number ({description}), got {value!r}")
    return errors


def validate_snapshot(payload: Any) -> Dict[str, Any]:
    """
    Validate a raw snapshot payload against the schema

    Returns:
        dict with 'valid': bool, 'errors': list, 'schema_version': str
    """
    errors = []
    if not isinstance(payload, dict):
        return {'valid': False, 'errors': ['snapshot must be an object'], 'schema_version': SCHEMA_VERSION}

    collections = {
        'position': get_field_name('positions', 'snapshot'),
        'call': get_field_name('calls', 'snapshot'),
        'watchlist': get_field_name('watchlist', 'snapshot'),
        'event': get_field_name('events', 'snapshot')
    }
    for category, key in collections.items():
        records = payload.get(key, [])
        if not isinstance(records, list):
            errors.append(f"'{key}' must be a list")
            continue
        for i, record in enumerate(records):
            if not isinstance(record, dict):
                errors.append(f"{key}[{i}] must be an object")
                continue
            for logical in REQUIRED_FIELDS[category]:
                field = get_field_name(logical, category)
                if field not in record:
                    errors.append(f"{key}[{i}] missing '{field}'")
            if category == 'call':
                errors.extend(_amount_errors(record, f"{key}[{i}]"))

    next_id = payload.get(get_field_name('next_id', 'snapshot'), 1)
    if not isinstance(next_id, int) or isinstance(next_id, bool) or next_id < 1:
        errors.append("'nextId' must be a positive integer")

    return {
        'valid': len(errors) == 0,
        'errors': errors,
        'schema_version': SCHEMA_VERSION
    }


def get_field_interpretation(field_name: str) -> Optional[Dict]:
    """Get interpretation details for a field"""
    return FIELD_INTERPRETATIONS.get(field_name)
