"""
Tests for SMTP delivery service.
"""

import pytest
import smtplib
import sys
import os
from unittest.mock import MagicMock, patch

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.models import WelcomeMessage
from services.smtp import SmtpSettings, SmtpMailer, parse_port, build_mime_message


@pytest.fixture
def message():
    return WelcomeMessage(
        from_address='StepSmart <team@example.com>',
        to='a@b.com',
        subject='Welcome to PM-X Accelerator',
        text='Hi Jane,\n\nThanks for enrolling.',
        html='<p>Hi Jane,</p>',
    )


@pytest.fixture
def settings():
    return SmtpSettings(host='smtp.example.com', port=587,
                        username='team@example.com', password='secret')


class TestParsePort:
    """Test port parsing policy."""

    def test_valid_port(self):
        assert parse_port('465') == 465
        assert parse_port(' 2525 ') == 2525

    @pytest.mark.parametrize('value', [None, '', '   ', 'abc', '0', '-25', '4.5'])
    def test_invalid_port_falls_back(self, value):
        assert parse_port(value) == 587

    def test_custom_fallback(self):
        assert parse_port('', fallback=25) == 25


class TestSmtpSettings:
    """Test SmtpSettings construction."""

    def test_implicit_tls_for_465(self):
        settings = SmtpSettings.from_env({'SMTP_HOST': 'h', 'SMTP_PORT': '465'})
        assert settings.use_ssl is True
        assert settings.port == 465

    @pytest.mark.parametrize('raw', ['587', '', 'abc'])
    def test_explicit_tls_for_other_ports(self, raw):
        settings = SmtpSettings.from_env({'SMTP_HOST': 'h', 'SMTP_PORT': raw})
        assert settings.use_ssl is False
        assert settings.port == 587

    def test_from_env_reads_all_fields(self):
        settings = SmtpSettings.from_env({
            'SMTP_HOST': ' smtp.example.com ',
            'SMTP_PORT': '2525',
            'SMTP_USER': 'team@example.com',
            'SMTP_PASS': 'secret',
        })

        assert settings.host == 'smtp.example.com'
        assert settings.port == 2525
        assert settings.username == 'team@example.com'
        assert settings.password == 'secret'
        assert settings.is_configured is True

    def test_overrides_win_over_environment(self):
        settings = SmtpSettings.from_env(
            {'SMTP_HOST': 'env-host', 'SMTP_USER': 'env-user'},
            {'SMTP_HOST': 'secret-host', 'SMTP_PORT': '465'}
        )

        assert settings.host == 'secret-host'
        assert settings.username == 'env-user'
        assert settings.use_ssl is True

    def test_missing_host_is_not_configured(self):
        assert SmtpSettings.from_env({}).is_configured is False

    def test_repr_hides_password(self, settings):
        assert 'secret' not in repr(settings)


class TestBuildMimeMessage:
    """Test MIME message construction."""

    def test_multipart_alternative(self, message):
        mime = build_mime_message(message)

        assert mime['To'] == 'a@b.com'
        assert mime['Subject'] == 'Welcome to PM-X Accelerator'
        assert 'team@example.com' in mime['From']
        assert mime.get_content_type() == 'multipart/alternative'
        assert 'Hi Jane,' in mime.get_body(preferencelist=('plain',)).get_content()
        assert '<p>Hi Jane,</p>' in mime.get_body(preferencelist=('html',)).get_content()


class TestSmtpMailer:
    """Test SmtpMailer.send."""

    @patch('services.smtp.smtplib.SMTP')
    def test_send_with_starttls(self, mock_smtp, settings, message):
        server = mock_smtp.return_value.__enter__.return_value
        server.has_extn.return_value = True

        result = SmtpMailer(settings).send(message)

        assert result.success is True
        mock_smtp.assert_called_once_with('smtp.example.com', 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with('team@example.com', 'secret')
        server.send_message.assert_called_once()

    @patch('services.smtp.smtplib.SMTP')
    def test_send_without_starttls_support(self, mock_smtp, settings, message):
        server = mock_smtp.return_value.__enter__.return_value
        server.has_extn.return_value = False

        result = SmtpMailer(settings).send(message)

        assert result.success is True
        server.starttls.assert_not_called()

    @patch('services.smtp.smtplib.SMTP')
    @patch('services.smtp.smtplib.SMTP_SSL')
    def test_send_implicit_tls(self, mock_smtp_ssl, mock_smtp, message):
        settings = SmtpSettings(host='smtp.example.com', port=465,
                                username='team@example.com', password='secret')
        server = mock_smtp_ssl.return_value.__enter__.return_value

        result = SmtpMailer(settings).send(message)

        assert result.success is True
        assert mock_smtp_ssl.call_args[0] == ('smtp.example.com', 465)
        mock_smtp.assert_not_called()
        server.login.assert_called_once_with('team@example.com', 'secret')
        server.send_message.assert_called_once()

    @patch('services.smtp.smtplib.SMTP')
    def test_no_login_without_credentials(self, mock_smtp, message):
        server = mock_smtp.return_value.__enter__.return_value

        result = SmtpMailer(SmtpSettings(host='smtp.example.com')).send(message)

        assert result.success is True
        server.login.assert_not_called()

    @patch('services.smtp.smtplib.SMTP')
    def test_connection_error_returns_failure(self, mock_smtp, settings, message):
        mock_smtp.side_effect = ConnectionRefusedError('Connection refused')

        result = SmtpMailer(settings).send(message)

        assert result.success is False
        assert result.error_message == 'Connection refused'

    @patch('services.smtp.smtplib.SMTP')
    def test_auth_error_returns_failure(self, mock_smtp, settings, message):
        server = mock_smtp.return_value.__enter__.return_value
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b'Bad credentials')

        result = SmtpMailer(settings).send(message)

        assert result.success is False
        assert 'Bad credentials' in result.error_message
        server.send_message.assert_not_called()

    @patch('services.smtp.smtplib.SMTP')
    def test_empty_error_message_uses_default(self, mock_smtp, settings, message):
        mock_smtp.side_effect = OSError()

        result = SmtpMailer(settings).send(message)

        assert result.error_message == 'Unknown SMTP error'

    @patch('services.smtp.smtplib.SMTP')
    def test_unconfigured_host_fails_without_connecting(self, mock_smtp, message):
        result = SmtpMailer(SmtpSettings()).send(message)

        assert result.success is False
        assert result.error_message == 'SMTP not configured (missing SMTP_HOST)'
        mock_smtp.assert_not_called()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
