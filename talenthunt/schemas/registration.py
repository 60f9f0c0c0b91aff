"""Request bodies for the registration wizard, one model per step.

Fields are optional so a step can be saved in several calls; required and
conditional fields are checked by the workflow service on the merged document.
"""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Gender = Literal["Male", "Female"]
ShirtSize = Literal["XS", "S", "M", "L", "XL", "XXL"]
TalentCategory = Literal["Singing", "Dancing", "Acting", "Comedy", "Drama", "Instrumental", "Other"]


class StepModel(BaseModel):
    next_step: Optional[int] = Field(default=None, ge=1, le=8, alias="nextStep")

    model_config = {"populate_by_name": True}

    def payload(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True, exclude={"next_step"})


class CreateRegistrationRequest(BaseModel):
    registration_type: Literal["individual", "group", "bulk"] = Field(..., alias="registrationType")
    bulk_registration_id: Optional[str] = Field(default=None, alias="bulkRegistrationId")

    model_config = {"populate_by_name": True}


class PersonalInfo(StepModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[EmailStr] = None
    phoneNo: Optional[str] = None
    dateOfBirth: Optional[date] = None
    placeOfBirth: Optional[str] = None
    gender: Optional[Gender] = None
    maritalStatus: Optional[Literal["Single", "Married"]] = None
    address: Optional[str] = None
    state: Optional[str] = None
    lga: Optional[str] = None
    nationality: Optional[str] = None
    tshirtSize: Optional[ShirtSize] = None


class PreviousParticipation(BaseModel):
    category: Optional[TalentCategory] = None
    otherCategory: Optional[str] = None
    competitionName: Optional[str] = None
    position: Optional[str] = None


class TalentInfo(StepModel):
    talentCategory: Optional[TalentCategory] = None
    otherTalentCategory: Optional[str] = None
    skillLevel: Optional[Literal["Beginner", "Intermediate", "Advanced"]] = None
    stageName: Optional[str] = None
    previouslyParticipated: Optional[Literal["Yes", "No"]] = None
    previousParticipation: Optional[PreviousParticipation] = None


class GroupMember(BaseModel):
    firstName: str
    lastName: str
    dateOfBirth: date
    gender: Gender
    tshirtSize: ShirtSize


class GroupInfo(StepModel):
    groupName: Optional[str] = None
    noOfGroupMembers: Optional[int] = None
    members: Optional[List[GroupMember]] = None


class GuardianInfo(StepModel):
    title: Optional[Literal["Mr", "Mrs", "Miss"]] = None
    guardianName: Optional[str] = None
    relationship: Optional[Literal["Father", "Mother", "Aunt", "Uncle", "Brother", "Sister", "Other"]] = None
    otherRelationship: Optional[str] = None
    guardianEmail: Optional[EmailStr] = None
    guardianPhoneNo: Optional[str] = None
    guardianAddress: Optional[str] = None
    guardianState: Optional[str] = None


class AuditionInfo(StepModel):
    auditionLocation: Optional[Literal["Lagos", "Benin"]] = None
    auditionDate: Optional[date] = None
    auditionTime: Optional[str] = None
    auditionRequirement: Optional[
        Literal["Microphone", "Guitar", "Bass", "Drum", "BackgroundMusic", "StageLighting", "Projector", "Other"]
    ] = None
    otherRequirement: Optional[str] = None
    hasInstrument: Optional[Literal["Yes", "No"]] = None


class TermsConditions(StepModel):
    rulesAcceptance: Optional[bool] = None
    promotionalAcceptance: Optional[bool] = None
    contestantSignature: Optional[str] = None
    guardianSignature: Optional[str] = None


class ReviewRequest(BaseModel):
    status: Literal["under_review", "approved", "rejected", "qualified", "disqualified"]
    notes: Optional[str] = None


# step number -> body model
STEP_MODELS = {
    1: PersonalInfo,
    2: TalentInfo,
    3: GroupInfo,
    4: GuardianInfo,
    6: AuditionInfo,
    7: TermsConditions,
}
