"""
Tests for forwarder configuration.
"""

import json

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.config import ForwarderConfig
from domain.errors import ConfigurationError


class TestForwarderConfigFromEnviron:
    """Test building configuration from environment variables."""

    def test_minimal_environment(self):
        config = ForwarderConfig.from_environ({'MAIL_S3_BUCKET': 'inbound-bucket'})

        assert config.message_bucket == 'inbound-bucket'
        assert config.message_key_prefix == ''
        assert config.forward_mapping == {}
        assert config.from_email is None
        assert config.subject_prefix == ''
        assert config.to_email is None
        assert config.allow_plus_sign is True

    def test_full_environment(self):
        config = ForwarderConfig.from_environ({
            'MAIL_S3_BUCKET': 'inbound-bucket',
            'MAIL_S3_PREFIX': 'inbound/',
            'MAIL_SENDER': 'relay@corp.com',
            'MAIL_SUBJECT_PREFIX': '[Fwd] ',
            'MAIL_TO_OVERRIDE': 'team@corp.com',
            'MAIL_ALLOW_PLUS_SIGN': 'false',
            'MAIL_FORWARD_MAPPING': json.dumps({
                'Sales@Example.com': ['alice@corp.com', 'bob@corp.com'],
                'info': 'carol@corp.com',
            }),
        })

        assert config.message_key_prefix == 'inbound/'
        assert config.from_email == 'relay@corp.com'
        assert config.subject_prefix == '[Fwd] '
        assert config.to_email == 'team@corp.com'
        assert config.allow_plus_sign is False
        assert config.forward_mapping == {
            'sales@example.com': ['alice@corp.com', 'bob@corp.com'],
            'info': ['carol@corp.com'],
        }

    def test_recipients_become_wildcard_rule(self):
        config = ForwarderConfig.from_environ({
            'MAIL_S3_BUCKET': 'inbound-bucket',
            'MAIL_RECIPIENTS': 'alice@corp.com, bob@corp.com,',
        })

        assert config.forward_mapping == {'@': ['alice@corp.com', 'bob@corp.com']}

    def test_explicit_wildcard_wins_over_recipients(self):
        config = ForwarderConfig.from_environ({
            'MAIL_S3_BUCKET': 'inbound-bucket',
            'MAIL_RECIPIENTS': 'alice@corp.com',
            'MAIL_FORWARD_MAPPING': '{"@": ["carol@corp.com"]}',
        })

        assert config.forward_mapping == {'@': ['carol@corp.com']}

    def test_empty_optional_values_are_unset(self):
        config = ForwarderConfig.from_environ({
            'MAIL_S3_BUCKET': 'inbound-bucket',
            'MAIL_SENDER': '',
            'MAIL_TO_OVERRIDE': '',
            'MAIL_ALLOW_PLUS_SIGN': '',
        })

        assert config.from_email is None
        assert config.to_email is None
        assert config.allow_plus_sign is True

    def test_missing_bucket(self):
        with pytest.raises(ConfigurationError, match="MAIL_S3_BUCKET"):
            ForwarderConfig.from_environ({})

    def test_invalid_json(self):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            ForwarderConfig.from_environ({
                'MAIL_S3_BUCKET': 'inbound-bucket',
                'MAIL_FORWARD_MAPPING': '{not json',
            })

    def test_mapping_must_be_object(self):
        with pytest.raises(ConfigurationError, match="must be a JSON object"):
            ForwarderConfig.from_environ({
                'MAIL_S3_BUCKET': 'inbound-bucket',
                'MAIL_FORWARD_MAPPING': '["a@b.com"]',
            })

    def test_mapping_values_must_be_strings(self):
        with pytest.raises(ConfigurationError, match="list of strings"):
            ForwarderConfig.from_environ({
                'MAIL_S3_BUCKET': 'inbound-bucket',
                'MAIL_FORWARD_MAPPING': '{"info": [1, 2]}',
            })

    def test_invalid_boolean(self):
        with pytest.raises(ConfigurationError, match="MAIL_ALLOW_PLUS_SIGN"):
            ForwarderConfig.from_environ({
                'MAIL_S3_BUCKET': 'inbound-bucket',
                'MAIL_ALLOW_PLUS_SIGN': 'sometimes',
            })

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv('MAIL_S3_BUCKET', 'from-process-env')

        assert ForwarderConfig.from_environ().message_bucket == 'from-process-env'

    def test_config_is_immutable(self):
        config = ForwarderConfig(message_bucket='inbound-bucket')

        with pytest.raises(AttributeError):
            config.message_bucket = 'other'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
