"""Typed response models for PNI modules."""

from pydantic import BaseModel, ConfigDict, Field


class ModInfo(BaseModel):
    """Device type and firmware revision (GET_MOD_INFO_RESP)."""

    device_type: str = Field(..., max_length=4, description="Four character device type")
    revision: str = Field(..., max_length=4, description="Four character firmware revision")

    model_config = ConfigDict(frozen=True, json_schema_extra={"example": {"device_type": "TP3 ", "revision": "1.04"}})


class Data(BaseModel):
    """One GET_DATA_RESP sample. Components that were not selected stay None."""

    heading: float | None = Field(None, description="Heading, 0.0 to 359.9 degrees")
    pitch: float | None = Field(None, description="Pitch, -90.0 to +90.0 degrees")
    roll: float | None = Field(None, description="Roll, -180.0 to +180.0 degrees")
    temperature: float | None = Field(None, description="Internal temperature in degrees Celsius")
    distortion: bool | None = Field(None, description="A magnetometer axis reads beyond 150 uT")
    cal_status: bool | None = Field(None, description="Module is user calibrated")
    accel_x: float | None = Field(None, description="Acceleration normalized to g")
    accel_y: float | None = Field(None, description="Acceleration normalized to g")
    accel_z: float | None = Field(None, description="Acceleration normalized to g")
    mag_x: float | None = Field(None, description="Magnetic field in uT")
    mag_y: float | None = Field(None, description="Magnetic field in uT")
    mag_z: float | None = Field(None, description="Magnetic field in uT")
    mag_accuracy: float | None = Field(None, description="Magnetic accuracy estimate")


class AcqParams(BaseModel):
    """Sensor acquisition parameters (GET/SET_ACQ_PARAMS)."""

    acquisition_mode: bool = Field(..., description="True for poll mode, False for continuous mode")
    flush_filter: bool = Field(False, description="Flush the FIR filter after each sample")
    sample_delay: float = Field(0.0, ge=0.0, description="Seconds between samples in continuous mode")


class UserCalScore(BaseModel):
    """Final calibration quality report (USER_CAL_SCORE)."""

    mag_cal_score: float = Field(..., description="Magnetometer calibration score")
    accel_cal_score: float = Field(..., description="Accelerometer calibration score")
    distribution_error: float = Field(..., description="Sample distribution error")
    tilt_error: float = Field(..., description="Tilt error")
    tilt_range: float = Field(..., description="Tilt range covered during calibration")
