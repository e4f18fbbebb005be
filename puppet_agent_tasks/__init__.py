"""Puppet agent tasks — report and reconcile the installed puppet-agent package."""

__version__ = "0.1.0"
