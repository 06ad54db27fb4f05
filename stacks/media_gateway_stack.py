import os
from pathlib import Path

from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_apigateway as apigw,
    aws_lambda as _lambda,
    aws_logs as logs,
)
from constructs import Construct

LAMBDA_ASSET_DIR = str(Path(__file__).resolve().parents[1] / "lambda")

# Runtime settings passed through from the deployer's shell. Empty values are
# allowed at synth time; the handlers answer 500 MISCONFIGURED until set.
IDENTITY_ENV_NAMES = ("SUPABASE_URL", "SUPABASE_ANON_KEY")
STORAGE_ENV_NAMES = (
    "R2_ACCOUNT_ID",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_BUCKET_NAME",
    "R2_PUBLIC_URL",
)
STREAM_ENV_NAMES = (
    "CLOUDFLARE_ACCOUNT_ID",
    "CLOUDFLARE_API_TOKEN",
    "STREAM_REQUIRE_OWNER_METADATA",
)


def _passthrough_env(names: tuple[str, ...]) -> dict[str, str]:
    return {name: (os.getenv(name) or "").strip() for name in names}


class MediaGatewayStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        stage_name = os.getenv("STAGE", "prod")
        data_retention_mode = os.getenv("DATA_RETENTION_MODE", "destroy").strip().lower()
        if data_retention_mode not in {"destroy", "retain"}:
            raise ValueError(
                "DATA_RETENTION_MODE must be 'destroy' or 'retain' (case-insensitive)"
            )
        log_removal_policy = (
            RemovalPolicy.DESTROY
            if data_retention_mode == "destroy"
            else RemovalPolicy.RETAIN
        )
        schema_version = "2026-10-01"
        upstream_timeout_seconds = 10
        name_prefix = f"{construct_id}-{stage_name}"

        common_env = {
            "SCHEMA_VERSION": schema_version,
            "UPSTREAM_TIMEOUT_SECONDS": str(upstream_timeout_seconds),
            **_passthrough_env(IDENTITY_ENV_NAMES),
        }

        storage_presign_fn = _lambda.Function(
            self,
            "StoragePresignHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="storage_presign.handler",
            code=_lambda.Code.from_asset(LAMBDA_ASSET_DIR),
            timeout=Duration.seconds(15),
            memory_size=256,
            environment={**common_env, **_passthrough_env(STORAGE_ENV_NAMES)},
        )

        stream_upload_fn = _lambda.Function(
            self,
            "StreamUploadHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="stream_upload.handler",
            code=_lambda.Code.from_asset(LAMBDA_ASSET_DIR),
            timeout=Duration.seconds(30),
            memory_size=256,
            environment={**common_env, **_passthrough_env(STREAM_ENV_NAMES)},
        )

        for logical_id, fn in (
            ("StoragePresignLogGroup", storage_presign_fn),
            ("StreamUploadLogGroup", stream_upload_fn),
        ):
            logs.LogGroup(
                self,
                logical_id,
                log_group_name=f"/aws/lambda/{fn.function_name}",
                retention=logs.RetentionDays.ONE_WEEK,
                removal_policy=log_removal_policy,
            )

        access_log_group = logs.LogGroup(
            self,
            "ApiAccessLogGroup",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=log_removal_policy,
        )

        rest_api = apigw.RestApi(
            self,
            "MediaGatewayApi",
            rest_api_name=f"{name_prefix}-api",
            deploy_options=apigw.StageOptions(
                stage_name=stage_name,
                access_log_destination=apigw.LogGroupLogDestination(access_log_group),
                # Standard fields only; do not log headers (e.g., Authorization).
                access_log_format=apigw.AccessLogFormat.json_with_standard_fields(
                    caller=True,
                    http_method=True,
                    ip=True,
                    protocol=True,
                    request_time=True,
                    resource_path=True,
                    response_length=True,
                    status=True,
                    user=True,
                ),
            ),
            cloud_watch_role=True,
        )

        # OPTIONS goes to the handlers too; they answer CORS preflight themselves.
        for path, fn in (
            ("r2-presign", storage_presign_fn),
            ("stream-upload", stream_upload_fn),
        ):
            resource = rest_api.root.add_resource(path)
            integration = apigw.LambdaIntegration(fn)
            resource.add_method("POST", integration)
            resource.add_method("OPTIONS", integration)

        CfnOutput(
            self,
            "StoragePresignInvokeUrl",
            value=f"{rest_api.url}r2-presign",
            description="Invoke URL for presigned R2 upload/delete URLs.",
        )
        CfnOutput(
            self,
            "StreamUploadInvokeUrl",
            value=f"{rest_api.url}stream-upload",
            description="Invoke URL for Cloudflare Stream direct uploads.",
        )
        CfnOutput(
            self,
            "MediaGatewayBaseUrl",
            value=rest_api.url,
            description="Base URL for the media gateway CLI (MEDIA_GATEWAY_URL).",
        )
