"""
Credential model for S3-compatible storage accounts
"""


class Credential:
    """
    Access material for one named storage account.
    """

    def __init__(self, access_key_id="", secret_access_key="", bucket_name="",
                 region="", endpoint=""):
        """
        Initialize a Credential.

        Args:
            access_key_id: Access key ID
            secret_access_key: Secret access key
            bucket_name: Bucket name (optional, falls back to configuration)
            region: Region (optional, falls back to configuration)
            endpoint: Endpoint host or URL (optional, falls back to configuration)
        """
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint = endpoint

    def masked_secret(self):
        """Return the secret key with everything but the first 4 characters hidden."""
        if len(self.secret_access_key) > 4:
            return f"{self.secret_access_key[:4]}...{'*' * 8}"
        return '*' * len(self.secret_access_key)

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "AccessKeyID": self.access_key_id,
            "SecretAccessKey": self.secret_access_key,
            "BucketName": self.bucket_name,
            "Region": self.region,
            "Endpoint": self.endpoint,
        }

    @classmethod
    def from_dict(cls, data):
        """Deserialize from dictionary"""
        return cls(
            access_key_id=data.get("AccessKeyID", ""),
            secret_access_key=data.get("SecretAccessKey", ""),
            bucket_name=data.get("BucketName", ""),
            region=data.get("Region", ""),
            endpoint=data.get("Endpoint", ""),
        )

    def __eq__(self, other):
        if not isinstance(other, Credential):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Credential(access_key_id={self.access_key_id!r}, "
                f"bucket_name={self.bucket_name!r}, region={self.region!r}, "
                f"endpoint={self.endpoint!r})")
