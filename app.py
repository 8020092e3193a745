#!/usr/bin/env python3
"""CDK entry point for the static website."""

import aws_cdk as cdk

from infra.config import get_env_config
from infra.stacks.website_stack import WebsiteDeployStack

app = cdk.App()
config = get_env_config()

env = cdk.Environment(account=config["account"], region=config["region"])

WebsiteDeployStack(app, "WebsiteDeployStack", env=env)

app.synth()
