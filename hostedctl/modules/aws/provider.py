"""boto3 implementation of the cloud client interfaces."""
import logging
from typing import Dict, Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ...errors import CloudError
from ..models import CloudCredentials
from .clients import (
    Address,
    AvailabilityZone,
    CloudClient,
    IngressRule,
    Listener,
    LoadBalancer,
    RecordSet,
    SecurityGroup,
    TargetGroup,
    TargetGroupSpec,
)

logger = logging.getLogger(__name__)

LB_NOT_FOUND = ("LoadBalancerNotFound",)
TG_NOT_FOUND = ("TargetGroupNotFound",)
BUCKET_NOT_FOUND = ("404", "NoSuchBucket", "NotFound")

# Route53 escapes "*" in returned names
WILDCARD_ESCAPE = "\\052"


class _NotFound(Exception):
    pass


def _tags(tags: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"Key": k, "Value": v} for k, v in tags.items()]


def normalize_record_name(name: str) -> str:
    """Route53 names end with a dot and escape the wildcard label."""
    return name.replace(WILDCARD_ESCAPE, "*").rstrip(".").lower()


class Boto3CloudClient(CloudClient):
    """Talks to EC2, ELBv2, Route53 and S3 in one region."""

    def __init__(self, session: boto3.session.Session):
        self.region = session.region_name
        self._ec2 = session.client("ec2")
        self._elb = session.client("elbv2")
        self._route53 = session.client("route53")
        self._s3 = session.client("s3")

    @classmethod
    def from_credentials(cls, credentials: CloudCredentials, region: str) -> "Boto3CloudClient":
        session = boto3.session.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            region_name=region,
        )
        return cls(session)

    def _call(self, client, operation: str, not_found: tuple = (), **kwargs):
        """Invoke ``operation``, translating provider errors.

        Raises _NotFound for the listed error codes and CloudError otherwise.
        """
        logger.debug(f"☁️  {operation} {kwargs}")
        try:
            return getattr(client, operation)(**kwargs)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            if code in not_found:
                raise _NotFound(code) from e
            raise CloudError(operation, code, e.response.get("Error", {}).get("Message", str(e))) from e
        except BotoCoreError as e:
            raise CloudError(operation, type(e).__name__, str(e)) from e

    def _paginate(self, client, operation: str, **kwargs):
        try:
            yield from client.get_paginator(operation).paginate(**kwargs)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise CloudError(operation, code, e.response.get("Error", {}).get("Message", str(e))) from e
        except BotoCoreError as e:
            raise CloudError(operation, type(e).__name__, str(e)) from e

    # Addresses

    def describe_address(self, name: str) -> Optional[Address]:
        output = self._call(
            self._ec2, "describe_addresses",
            Filters=[{"Name": "tag:Name", "Values": [name]}],
        )
        if not output.get("Addresses"):
            return None
        address = output["Addresses"][0]
        return Address(
            allocation_id=address.get("AllocationId", ""),
            public_ip=address.get("PublicIp", ""),
            network_interface_id=address.get("NetworkInterfaceId") or None,
        )

    def allocate_address(self) -> Address:
        output = self._call(self._ec2, "allocate_address", Domain="vpc")
        return Address(allocation_id=output["AllocationId"], public_ip=output["PublicIp"])

    def tag_address(self, allocation_id: str, tags: Dict[str, str]) -> None:
        self._call(self._ec2, "create_tags", Resources=[allocation_id], Tags=_tags(tags))

    def release_address(self, allocation_id: str) -> None:
        self._call(self._ec2, "release_address", AllocationId=allocation_id)

    # Load balancers

    def describe_load_balancer(self, name: str) -> Optional[LoadBalancer]:
        try:
            output = self._call(self._elb, "describe_load_balancers", LB_NOT_FOUND, Names=[name])
        except _NotFound:
            return None
        if not output.get("LoadBalancers"):
            return None
        lb = output["LoadBalancers"][0]
        return LoadBalancer(
            arn=lb["LoadBalancerArn"],
            name=lb.get("LoadBalancerName", name),
            dns_name=lb.get("DNSName", ""),
            vpc_id=lb.get("VpcId", ""),
            availability_zones=tuple(
                AvailabilityZone(zone=az.get("ZoneName", ""), subnet=az.get("SubnetId", ""))
                for az in lb.get("AvailabilityZones", [])
            ),
        )

    def create_load_balancer(self, name, subnet, allocation_id, tags) -> LoadBalancer:
        kwargs = {
            "Name": name,
            "Scheme": "internet-facing",
            "Type": "network",
            "Tags": _tags(tags),
        }
        if allocation_id:
            kwargs["SubnetMappings"] = [{"SubnetId": subnet, "AllocationId": allocation_id}]
        else:
            kwargs["Subnets"] = [subnet]
        output = self._call(self._elb, "create_load_balancer", **kwargs)
        lb = output["LoadBalancers"][0]
        return LoadBalancer(
            arn=lb["LoadBalancerArn"],
            name=name,
            dns_name=lb.get("DNSName", ""),
            vpc_id=lb.get("VpcId", ""),
        )

    def delete_load_balancer(self, arn: str) -> None:
        self._call(self._elb, "delete_load_balancer", LoadBalancerArn=arn)

    # Target groups

    def describe_target_group(self, name: str) -> Optional[TargetGroup]:
        try:
            output = self._call(self._elb, "describe_target_groups", TG_NOT_FOUND, Names=[name])
        except _NotFound:
            return None
        if not output.get("TargetGroups"):
            return None
        tg = output["TargetGroups"][0]
        return TargetGroup(
            arn=tg["TargetGroupArn"],
            name=tg.get("TargetGroupName", name),
            port=int(tg.get("Port", 0)),
            protocol=tg.get("Protocol", "TCP"),
        )

    def create_target_group(self, spec: TargetGroupSpec) -> TargetGroup:
        kwargs = {
            "Name": spec.name,
            "Protocol": spec.protocol,
            "Port": spec.port,
            "VpcId": spec.vpc,
            "TargetType": spec.target_type,
            "HealthCheckProtocol": spec.health_check_protocol,
            "HealthCheckEnabled": True,
            "HealthCheckIntervalSeconds": spec.health_check_interval,
            "HealthCheckTimeoutSeconds": spec.health_check_timeout,
            "HealthyThresholdCount": spec.healthy_threshold,
            "UnhealthyThresholdCount": spec.unhealthy_threshold,
        }
        if spec.health_check_port is not None:
            kwargs["HealthCheckPort"] = str(spec.health_check_port)
        output = self._call(self._elb, "create_target_group", **kwargs)
        tg = output["TargetGroups"][0]
        return TargetGroup(arn=tg["TargetGroupArn"], name=spec.name, port=spec.port, protocol=spec.protocol)

    def delete_target_group(self, arn: str) -> None:
        self._call(self._elb, "delete_target_group", TargetGroupArn=arn)

    def describe_targets(self, arn: str) -> List[str]:
        output = self._call(self._elb, "describe_target_health", TargetGroupArn=arn)
        return [d["Target"]["Id"] for d in output.get("TargetHealthDescriptions", [])]

    def register_target(self, arn: str, target_id: str) -> None:
        self._call(self._elb, "register_targets", TargetGroupArn=arn, Targets=[{"Id": target_id}])

    def deregister_target(self, arn: str, target_id: str) -> None:
        self._call(self._elb, "deregister_targets", TargetGroupArn=arn, Targets=[{"Id": target_id}])

    # Listeners

    def describe_listeners(self, lb_arn: str) -> List[Listener]:
        listeners = []
        for page in self._paginate(self._elb, "describe_listeners", LoadBalancerArn=lb_arn):
            for listener in page.get("Listeners", []):
                actions = listener.get("DefaultActions") or [{}]
                listeners.append(Listener(
                    arn=listener["ListenerArn"],
                    port=int(listener.get("Port", 0)),
                    target_group_arn=actions[0].get("TargetGroupArn"),
                ))
        return listeners

    def create_listener(self, lb_arn: str, tg_arn: str, port: int, protocol: str) -> Listener:
        output = self._call(
            self._elb, "create_listener",
            LoadBalancerArn=lb_arn,
            Port=port,
            Protocol=protocol,
            DefaultActions=[{"Type": "forward", "TargetGroupArn": tg_arn}],
        )
        return Listener(arn=output["Listeners"][0]["ListenerArn"], port=port, target_group_arn=tg_arn)

    def delete_listener(self, arn: str) -> None:
        self._call(self._elb, "delete_listener", ListenerArn=arn)

    # DNS

    def find_record(self, zone_id: str, name: str, record_type: str) -> Optional[RecordSet]:
        wanted = normalize_record_name(name)
        for page in self._paginate(self._route53, "list_resource_record_sets", HostedZoneId=zone_id):
            for record in page.get("ResourceRecordSets", []):
                if record.get("Type") != record_type:
                    continue
                if normalize_record_name(record.get("Name", "")) != wanted:
                    continue
                values = tuple(r["Value"] for r in record.get("ResourceRecords", []))
                if not values:
                    continue
                return RecordSet(name=record["Name"], type=record_type, ttl=int(record.get("TTL", 0)), values=values)
        return None

    def change_record(self, zone_id: str, action: str, record: RecordSet) -> None:
        self._call(
            self._route53, "change_resource_record_sets",
            HostedZoneId=zone_id,
            ChangeBatch={
                "Changes": [{
                    "Action": action,
                    "ResourceRecordSet": {
                        "Name": record.name,
                        "Type": record.type,
                        "TTL": record.ttl,
                        "ResourceRecords": [{"Value": v} for v in record.values],
                    },
                }],
            },
        )

    # Buckets

    def bucket_exists(self, name: str) -> bool:
        try:
            self._call(self._s3, "head_bucket", BUCKET_NOT_FOUND, Bucket=name)
        except _NotFound:
            return False
        return True

    def create_bucket(self, name: str, acl: str) -> None:
        kwargs = {"Bucket": name, "ObjectOwnership": "ObjectWriter"}
        if self.region and self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        self._call(self._s3, "create_bucket", **kwargs)
        # New buckets block public ACLs by default
        self._call(self._s3, "delete_public_access_block", Bucket=name)
        self._call(self._s3, "put_bucket_acl", Bucket=name, ACL=acl)

    def tag_bucket(self, name: str, tags: Dict[str, str]) -> None:
        self._call(self._s3, "put_bucket_tagging", Bucket=name, Tagging={"TagSet": _tags(tags)})

    def upload_object(self, name: str, key: str, path: str, acl: str) -> None:
        with open(path, "rb") as body:
            self._call(self._s3, "put_object", Bucket=name, Key=key, Body=body, ACL=acl)

    def list_object_keys(self, name: str) -> Iterable[str]:
        for page in self._paginate(self._s3, "list_objects_v2", Bucket=name):
            for obj in page.get("Contents", []):
                yield obj["Key"]

    def delete_object(self, name: str, key: str) -> None:
        self._call(self._s3, "delete_object", Bucket=name, Key=key)

    def delete_bucket(self, name: str) -> None:
        self._call(self._s3, "delete_bucket", Bucket=name)

    # Security groups

    def describe_security_group(self, name: str) -> Optional[SecurityGroup]:
        output = self._call(
            self._ec2, "describe_security_groups",
            Filters=[{"Name": "tag:Name", "Values": [name]}],
        )
        if not output.get("SecurityGroups"):
            return None
        sg = output["SecurityGroups"][0]
        rules = [
            IngressRule(
                protocol=p.get("IpProtocol", ""),
                from_port=int(p.get("FromPort", -1)),
                to_port=int(p.get("ToPort", -1)),
                cidrs=tuple(r.get("CidrIp", "") for r in p.get("IpRanges", [])),
            )
            for p in sg.get("IpPermissions", [])
        ]
        return SecurityGroup(group_id=sg["GroupId"], rules=rules)

    def authorize_ingress(self, group_id: str, rule: IngressRule) -> None:
        self._call(
            self._ec2, "authorize_security_group_ingress",
            GroupId=group_id,
            IpPermissions=[{
                "IpProtocol": rule.protocol,
                "FromPort": rule.from_port,
                "ToPort": rule.to_port,
                "IpRanges": [{"CidrIp": cidr} for cidr in rule.cidrs],
            }],
        )
