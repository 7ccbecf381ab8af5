# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
The SGX CI test deployment: AESM, a base test image, a bootstrap node,
a second node and the enclave test runner.
"""
from typing import Dict, List, Optional

from ..MODELS.deployment_config import DeploymentConfig
from ..MODELS.service_descriptor import (
    DeviceMapping,
    ExposedPort,
    ResourceLimits,
    ServiceDescriptor,
    VolumeBinding,
)

AESM_IMAGE = "fortanix/aesmd:2.13.103.1-1"
SGX_DEVICES = ("/dev/sgx/enclave", "/dev/sgx/provision")
AESM_SOCKET_DIR = ("/tmp/aesmd", "/var/run/aesmd")
PROXY_VARIABLES = ["http_proxy", "https_proxy"]
TENDERMINT_P2P_PORT = 26656
TENDERMINT_RPC_PORT = 26657


def _sgx_service(name: str, image: str, depends_on: Optional[List[str]] = None,
                 mounts: Optional[Dict[str, str]] = None, proxy: bool = True,
                 **extra) -> ServiceDescriptor:
    """
    A service with the SGX devices and the AESM socket directory mapped in.
    Every CI container runs interactively.
    """
    volumes = [VolumeBinding(source=AESM_SOCKET_DIR[0], target=AESM_SOCKET_DIR[1])]
    for source, target in (mounts or {}).items():
        volumes.append(VolumeBinding(source=source, target=target))
    return ServiceDescriptor(
        name=name,
        image=image,
        depends_on=depends_on or [],
        devices=[DeviceMapping(host_path=path) for path in SGX_DEVICES],
        volumes=volumes,
        env_passthrough=PROXY_VARIABLES if proxy else [],
        stdin_open=True,
        tty=True,
        **extra,
    )


def build_ci_deployment() -> DeploymentConfig:
    """
    Builds the CI deployment.

    aesm serves attestation to everything else; node joins the network
    started by bootstrap. base carries the only resource limits.
    """
    services = [
        _sgx_service("aesm", AESM_IMAGE),
        _sgx_service(
            "base", "tests-base-image",
            depends_on=["aesm"],
            mounts={"/tmp/secretd": "/root/.secretd", "/tmp/secretcli": "/root/.secretcli"},
            proxy=False,
            resources=ResourceLimits(cpus=1, memory="4g"),
        ),
        _sgx_service(
            "bootstrap", "ci-enigma-sgx-bootstrap",
            depends_on=["aesm"],
            mounts={"/tmp/secretd": "/root/.secretd"},
            container_name="bootstrap",
            expose=[ExposedPort(port=TENDERMINT_P2P_PORT), ExposedPort(port=TENDERMINT_RPC_PORT)],
        ),
        _sgx_service(
            "node", "ci-enigma-sgx-node",
            depends_on=["bootstrap"],
            mounts={"/tmp/secretd": "/tmp/.secretd"},
        ),
        _sgx_service(
            "enclave-test", "rust-enclave-test",
            depends_on=["aesm"],
            mounts={"/tmp/secretd": "/tmp/.secretd", "/tmp/secretcli": "/root/.secretcli"},
        ),
    ]
    return DeploymentConfig(services={svc.name: svc for svc in services}, version="3")
