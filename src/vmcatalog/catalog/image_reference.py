"""
Infrastructure-as-code snippets for a VM image reference.

Given the four image coordinates, produce the fragment each deployment
tool expects, ready to paste into a template.
"""

import json
from typing import Dict

from .models import ImageReference

AVAILABLE_FORMATS = (
    ('arm', 'ARM Template'),
    ('terraform', 'Terraform'),
    ('bicep', 'Bicep'),
    ('ansible', 'Ansible'),
)


def validate_image_reference(image_ref: ImageReference) -> bool:
    """True if all four coordinates are non-blank strings."""
    return all(
        isinstance(value, str) and value.strip()
        for value in (image_ref.publisher, image_ref.offer, image_ref.sku, image_ref.version)
    )


def generate_arm_template(image_ref: ImageReference) -> str:
    return json.dumps({
        'imageReference': {
            'publisher': image_ref.publisher,
            'offer': image_ref.offer,
            'sku': image_ref.sku,
            'version': image_ref.version,
        }
    }, indent=2)


def generate_terraform_template(image_ref: ImageReference) -> str:
    return (
        'source_image_reference {\n'
        f'  publisher = "{image_ref.publisher}"\n'
        f'  offer     = "{image_ref.offer}"\n'
        f'  sku       = "{image_ref.sku}"\n'
        f'  version   = "{image_ref.version}"\n'
        '}'
    )


def generate_bicep_template(image_ref: ImageReference) -> str:
    return (
        'imageReference: {\n'
        f"  publisher: '{image_ref.publisher}'\n"
        f"  offer: '{image_ref.offer}'\n"
        f"  sku: '{image_ref.sku}'\n"
        f"  version: '{image_ref.version}'\n"
        '}'
    )


def generate_ansible_template(image_ref: ImageReference) -> str:
    return (
        'image:\n'
        f'  publisher: "{image_ref.publisher}"\n'
        f'  offer: "{image_ref.offer}"\n'
        f'  sku: "{image_ref.sku}"\n'
        f'  version: "{image_ref.version}"'
    )


_GENERATORS = {
    'arm': generate_arm_template,
    'terraform': generate_terraform_template,
    'bicep': generate_bicep_template,
    'ansible': generate_ansible_template,
}


def generate_format(image_ref: ImageReference, format_key: str) -> str:
    """
    Render one format.

    Raises:
        ValueError: For an unknown format key
    """
    try:
        generator = _GENERATORS[format_key]
    except KeyError as e:
        raise ValueError(
            f"Unknown format '{format_key}'. "
            f"Allowed values: {', '.join(_GENERATORS)}"
        ) from e
    return generator(image_ref)


def generate_all_formats(image_ref: ImageReference) -> Dict[str, str]:
    """Render every supported format, keyed by format key."""
    return {key: generator(image_ref) for key, generator in _GENERATORS.items()}
