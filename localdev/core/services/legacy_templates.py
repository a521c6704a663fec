"""
Templates for files localdev renders into a legacy app tree.

Substitution is plain ``{key}`` replacement — no Jinja, no escaping.
Only keys present in the values mapping are touched, so the braces PHP
and YAML use for their own syntax pass through unchanged. Callers that
interpolate untrusted values into PHP strings escape them first
(see ``legacy_config.php_string``).
"""

from __future__ import annotations

import re
from typing import Any

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def render_template(template: str, values: dict[str, Any]) -> str:
    """Substitute ``{key}`` placeholders with their values.

    Args:
        template: Template text.
        values: Mapping of placeholder names to values (``str()``-ed).

    Returns:
        Rendered text.
    """
    # Single pass: substituted values are never rescanned for placeholders
    return _PLACEHOLDER.sub(
        lambda m: str(values[m[1]]) if m[1] in values else m[0],
        template,
    )


# ── Drupal ──────────────────────────────────────────────────────────

DRUPAL7_SETTINGS_TEMPLATE = """\
<?php

/**
 * @file
 * Generated by localdev for {deploy_name}. Local changes will be overwritten.
 */

$databases = array(
  'default' => array(
    'default' => array(
      'database' => '{database_name}',
      'username' => '{database_username}',
      'password' => '{database_password}',
      'host' => '{database_host}',
      'port' => {database_port},
      'driver' => '{database_driver}',
      'prefix' => '{database_prefix}',
    ),
  ),
);

$drupal_hash_salt = '{hash_salt}';

$base_url = '{deploy_url}';

ini_set('session.gc_probability', 1);
ini_set('session.gc_divisor', 100);
ini_set('session.gc_maxlifetime', 200000);
ini_set('session.cookie_lifetime', 2000000);

$conf['404_fast_paths_exclude'] = '/\\/(?:styles)\\//';
$conf['404_fast_paths'] = '/\\.(?:txt|png|gif|jpe?g|css|js|ico|swf|flv|cgi|bat|pl|dll|exe|asp)$/i';
$conf['404_fast_html'] = '<!DOCTYPE html><html><head><title>404 Not Found</title></head><body><h1>Not Found</h1><p>The requested URL "@path" was not found on this server.</p></body></html>';
"""

DRUPAL8_SETTINGS_TEMPLATE = """\
<?php

/**
 * @file
 * Generated by localdev for {deploy_name}. Local changes will be overwritten.
 */

$databases['default']['default'] = array(
  'database' => '{database_name}',
  'username' => '{database_username}',
  'password' => '{database_password}',
  'host' => '{database_host}',
  'port' => {database_port},
  'driver' => '{database_driver}',
  'prefix' => '{database_prefix}',
);

$settings['hash_salt'] = '{hash_salt}';

$base_url = '{deploy_url}';

$settings['file_scan_ignore_directories'] = [
  'node_modules',
  'bower_components',
];

$config_directories = array(
  CONFIG_SYNC_DIRECTORY => 'sites/default/files/sync',
);
"""

DRUSH_SETTINGS_TEMPLATE = """\
<?php

/**
 * @file
 * Database settings for running drush from the host against the
 * containerized database. Generated by localdev.
 */

$databases['default']['default'] = array(
  'database' => '{database_name}',
  'username' => '{database_username}',
  'password' => '{database_password}',
  'host' => '{database_host}',
  'port' => {database_port},
  'driver' => 'mysql',
  'prefix' => '',
);
"""

# ── WordPress ───────────────────────────────────────────────────────

WORDPRESS_CONFIG_TEMPLATE = """\
<?php
/**
 * Generated by localdev for {deploy_name}. Local changes will be overwritten.
 */

define('DB_NAME', '{database_name}');
define('DB_USER', '{database_username}');
define('DB_PASSWORD', '{database_password}');
define('DB_HOST', '{database_host}');
define('DB_CHARSET', 'utf8');
define('DB_COLLATE', '');

define('AUTH_KEY',         '{auth_key}');
define('SECURE_AUTH_KEY',  '{secure_auth_key}');
define('LOGGED_IN_KEY',    '{logged_in_key}');
define('NONCE_KEY',        '{nonce_key}');
define('AUTH_SALT',        '{auth_salt}');
define('SECURE_AUTH_SALT', '{secure_auth_salt}');
define('LOGGED_IN_SALT',   '{logged_in_salt}');
define('NONCE_SALT',       '{nonce_salt}');

$table_prefix = '{table_prefix}';

define('WP_HOME', '{deploy_url}');
define('WP_SITEURL', '{deploy_url}');

define('WP_DEBUG', false);

if ( !defined('ABSPATH') )
	define('ABSPATH', dirname(__FILE__) . '/');

require_once(ABSPATH . 'wp-settings.php');
"""
