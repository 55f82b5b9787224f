# CHIPSEC: Platform Security Assessment Framework
# Copyright (c) 2010-2021, Intel Corporation
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; Version 2.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.
#
# Contact information:
# chipsec@intel.com
#

# ================================================
# Byte reference model
# ================================================

class MappingError(RuntimeError):
    """Raised when an address mapper cannot translate a range."""
    pass


class ArtifactReadError(RuntimeError):
    def __init__(self, msg: str) -> None:
        super(ArtifactReadError, self).__init__(msg)


class InvalidDataError(RuntimeError):
    """Raised when a Data value is constructed from both literal bytes and references."""
    pass


# ================================================
# Data sources
# ================================================

class DataSourceError(RuntimeError):
    pass


class SourceNotFound(DataSourceError):
    """Raised when a data source found nothing to return."""
    pass


class AmbiguousMatch(DataSourceError):
    """Raised when a data source expected one match but found several."""
    pass


class UnsupportedComposition(DataSourceError):
    """Raised when a composing data source gets literal bytes or converted data."""
    pass


# ================================================
# State and configuration
# ================================================

class ArtifactNotFound(RuntimeError):
    """Raised when the state has no artifact of the requested kind."""
    pass


class SubsystemNotFound(RuntimeError):
    """Raised when the state has no subsystem of the requested kind."""
    pass


class DuplicateSubsystem(RuntimeError):
    """Raised when an artifact or subsystem kind is registered twice."""
    pass


class UnknownFlowError(RuntimeError):
    pass


class FlowRegistrationError(RuntimeError):
    """Raised when a flow name is registered twice."""
    pass


class BootflowConfigError(RuntimeError):
    pass


# ================================================
# TPM
# ================================================

class TPMError(RuntimeError):
    pass


class TPMNotInitializedError(TPMError):
    """Raised when a PCR is used before TPM Init."""
    pass


class TPMAlreadyInitializedError(TPMError):
    """Raised when Init is applied to an initialized TPM."""
    pass


class UnsupportedPCRError(TPMError):
    pass


class UnsupportedHashAlgorithmError(TPMError):
    pass


class EventLogParseError(RuntimeError):
    """Raised when a binary TCG event log cannot be parsed."""
    pass


# ================================================
# Run control
# ================================================

class PanicError(RuntimeError):
    """Raised when a Panic action is applied; aborts the whole run."""
    pass


class ExecutionBudgetExceeded(RuntimeError):
    """Raised when the boot process exceeds its step ceiling."""
    pass


# ================================================
# Brute force
# ================================================

class BruteForceError(RuntimeError):
    pass


class ReplayConsistencyError(BruteForceError):
    """Raised when a found solution does not reproduce the expected digest on replay."""
    pass
