"""Static website stack: private S3 origin behind CloudFront, plus the CI deploy role."""

from aws_cdk import CfnOutput, Duration, RemovalPolicy, Stack
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_cloudfront_origins as origins
from aws_cdk import aws_iam as iam
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_s3_deployment as s3deploy
from constructs import Construct

from infra.config import get_env_config
from src.config import DEPLOY_STATE_PREFIX, MANIFEST_KEY, SITE_CONFIG
from src.deploy.credentials import MAX_SESSION_SECONDS
from src.deploy.trust import GITHUB_OIDC_DOMAIN, RepositoryConfig, TrustClaim, trust_conditions
from src.edge.rewrite import render_function_code


class WebsiteDeployStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        config = get_env_config()
        prefix = config["bucket_prefix"]
        removal = (
            RemovalPolicy.DESTROY
            if config["removal_policy"] == "destroy"
            else RemovalPolicy.RETAIN
        )

        # GitHub Actions deploy identity
        oidc_provider = iam.OpenIdConnectProvider(
            self,
            "GithubOidcProvider",
            url=f"https://{GITHUB_OIDC_DOMAIN}",
            client_ids=["sts.amazonaws.com"],
        )
        claim = TrustClaim.for_repositories(
            RepositoryConfig.parse(raw) for raw in config["github_repos"]
        )
        deploy_role = iam.Role(
            self,
            "GithubDeployRole",
            role_name=config["deploy_role_name"],
            assumed_by=iam.OpenIdConnectPrincipal(
                oidc_provider,
                trust_conditions(claim, issuer=GITHUB_OIDC_DOMAIN),
            ),
            max_session_duration=Duration.seconds(MAX_SESSION_SECONDS),
        )

        bucket = s3.Bucket(
            self,
            "WebsiteBucket",
            bucket_name=f"{prefix}-site",
            encryption=s3.BucketEncryption.S3_MANAGED,
            public_read_access=False,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            removal_policy=removal,
            auto_delete_objects=removal == RemovalPolicy.DESTROY,
            enforce_ssl=True,
        )
        # The deploy manifest lists every object; keep it out of the distribution.
        bucket.add_to_resource_policy(
            iam.PolicyStatement(
                sid="DenyEdgeReadOfDeployState",
                effect=iam.Effect.DENY,
                principals=[iam.ServicePrincipal("cloudfront.amazonaws.com")],
                actions=["s3:GetObject"],
                resources=[bucket.arn_for_objects(f"{DEPLOY_STATE_PREFIX}*")],
            )
        )

        add_index_html = cloudfront.Function(
            self,
            "AddIndexHtmlFunction",
            code=cloudfront.FunctionCode.from_inline(render_function_code(SITE_CONFIG)),
            runtime=cloudfront.FunctionRuntime.JS_2_0,
            comment="Append index.html to directory-style request paths",
        )

        distribution = cloudfront.Distribution(
            self,
            "Distribution",
            default_root_object=SITE_CONFIG.root_document,
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.S3BucketOrigin.with_origin_access_control(
                    bucket,
                    origin_access_levels=[cloudfront.AccessLevel.READ],
                ),
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
                cache_policy=cloudfront.CachePolicy.CACHING_OPTIMIZED,
                compress=True,
                function_associations=[
                    cloudfront.FunctionAssociation(
                        function=add_index_html,
                        event_type=cloudfront.FunctionEventType.VIEWER_REQUEST,
                    )
                ],
            ),
            error_responses=[
                cloudfront.ErrorResponse(
                    http_status=404,
                    response_http_status=200,
                    response_page_path=f"/{SITE_CONFIG.root_document}",
                    ttl=Duration.seconds(0),
                ),
            ],
        )

        # Deploy role: publish assets and purge the cache, nothing else.
        bucket.grant_read_write(deploy_role)
        bucket.grant_delete(deploy_role)
        distribution.grant_create_invalidation(deploy_role)

        if config["deploy_assets"]:
            s3deploy.BucketDeployment(
                self,
                "WebsiteBucketDeployment",
                sources=[s3deploy.Source.asset(config["asset_dir"])],
                destination_bucket=bucket,
                distribution=distribution,
                distribution_paths=[*SITE_CONFIG.section_prefixes, *SITE_CONFIG.root_paths],
                exclude=[MANIFEST_KEY],
                memory_limit=1024,
            )

        CfnOutput(self, "WebsiteBucketName", value=bucket.bucket_name)
        CfnOutput(self, "DistributionId", value=distribution.distribution_id)
        CfnOutput(self, "WebsiteUrl", value=f"https://{distribution.distribution_domain_name}")
        CfnOutput(self, "DeployRoleArn", value=deploy_role.role_arn)
