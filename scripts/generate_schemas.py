"""Generate JSON schemas from Pydantic models and save to schemas/ directory."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rpxc.config import RpxcConfig
from rpxc.kernel.fingerprint import FingerprintRecord


def generate_schemas():
    """Generate JSON schemas for the persisted record and the config file."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    # Fingerprint sidecar record
    record_schema = FingerprintRecord.model_json_schema()
    record_schema_path = schemas_dir / "fingerprint_record.schema.json"
    with open(record_schema_path, 'w', encoding='utf-8') as f:
        json.dump(record_schema, f, indent=2, ensure_ascii=False)
    print(f"Generated: {record_schema_path}")

    # rpxc.json config file
    config_schema = RpxcConfig.model_json_schema()
    config_schema_path = schemas_dir / "rpxc_config.schema.json"
    with open(config_schema_path, 'w', encoding='utf-8') as f:
        json.dump(config_schema, f, indent=2, ensure_ascii=False)
    print(f"Generated: {config_schema_path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
