"""ECS Deployer - ordered CloudFormation deployment of an ECS service behind a load balancer."""
